"""Core Authorization Logic Module

This module holds the authorization rules of the proxy, independent of
the Flask host.

Module Structure:
    - customer.py    : Customer Management API controller (CustomerAPI)
    - request.py     : ProxyRequest model and path/method classification
    - exceptions.py  : ProxyError outcome
    - utils.py       : Session guard (validate_logged_in)
    - tmf_utils.py   : Related-party helpers
    - http_client.py : requests-based lookup client for the TMF services
    - rbac.py        : Identity read from the Flask session

Usage Pattern:
    These modules are NOT auto-imported; rbac.py needs a Flask request
    context while the rest can be used standalone.

        from logic_proxy.core.customer import CustomerAPI
        from logic_proxy.core.request import ProxyRequest, ProxyUser
"""
