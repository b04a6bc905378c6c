"""TMF Logic Proxy package.

To use the Flask app:
    from logic_proxy.flask_app import app

To use the Customer API controller on its own:
    from logic_proxy.core.customer import CustomerAPI
"""
# Note: We don't import flask_app by default; importing it loads settings
# and builds the application.
