import json
from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest

from logic_proxy.core.customer import CustomerAPI
from logic_proxy.core.exceptions import ProxyError
from logic_proxy.core.http_client import TmfClient
from logic_proxy.core.request import ProxyRequest, ProxyUser
from tests.conftest import BILLING_ACCOUNT_PATH, BILLING_SERVER, CUSTOMER_SERVER

BILLING_LOOKUP_URL = BILLING_SERVER + BILLING_ACCOUNT_PATH + "?customerAccount.id=1,2"


def make_request(body):
    raw = body if isinstance(body, str) else json.dumps(body)
    return ProxyRequest(method="GET", api_url="/DSCustomer/api/customerManagement/v2/customer/1",
                        body=raw, user=ProxyUser(party_id="9"))


def party_utils(has_party_role, is_related_party=()):
    tmf_utils = MagicMock()
    tmf_utils.has_party_role.return_value = has_party_role
    tmf_utils.is_related_party.side_effect = list(is_related_party)
    return tmf_utils


def make_api(cfg, tmf_utils):
    return CustomerAPI(cfg, TmfClient(), utils=SimpleNamespace(), tmf_utils=tmf_utils)


def test_allows_collections_without_checks(cfg, upstream):
    tmf_utils = MagicMock()
    api = make_api(cfg, tmf_utils)

    assert api.execute_post_validation(make_request([])) is None
    assert api.execute_post_validation(make_request([{"relatedParty": {"id": 1}}])) is None
    assert tmf_utils.mock_calls == []
    assert upstream.calls == []


def test_allows_owned_customer_without_billing_lookup(cfg, upstream):
    body = {"relatedParty": {"id": 9}, "customerAccount": [{"id": 1}, {"id": 2}]}
    tmf_utils = party_utils(True)
    req = make_request(body)

    assert make_api(cfg, tmf_utils).execute_post_validation(req) is None
    tmf_utils.has_party_role.assert_called_once_with(req, [body["relatedParty"]], "owner")
    tmf_utils.is_related_party.assert_not_called()
    assert upstream.calls == []


def test_allows_owned_customer_account(cfg, upstream):
    customer_path = "/customer/1"
    customer_account = {"customer": {"href": CUSTOMER_SERVER + customer_path}}
    customer = {"relatedParty": {"id": 3}}
    upstream.reply(CUSTOMER_SERVER + customer_path, body=customer)

    tmf_utils = party_utils(True)
    req = make_request(customer_account)

    assert make_api(cfg, tmf_utils).execute_post_validation(req) is None
    tmf_utils.has_party_role.assert_called_once_with(req, [customer["relatedParty"]], "owner")


@pytest.mark.parametrize("status", [500, 404])
def test_fails_when_customer_of_account_cannot_be_retrieved(cfg, upstream, status):
    upstream.reply(CUSTOMER_SERVER + "/customer/1", status=status)
    req = make_request({"customer": {"href": CUSTOMER_SERVER + "/customer/1"}})

    outcome = make_api(cfg, party_utils(True)).execute_post_validation(req)

    assert outcome == ProxyError(500, "The attached customer cannot be retrieved")


def _customer_with_accounts():
    return {
        "relatedParty": {"id": 9},
        "customerAccount": [{"id": 1}, {"id": 2}],
    }


def test_fails_when_billing_accounts_cannot_be_retrieved(cfg, upstream):
    upstream.reply(BILLING_LOOKUP_URL, status=500)
    tmf_utils = party_utils(False)

    outcome = make_api(cfg, tmf_utils).execute_post_validation(make_request(_customer_with_accounts()))

    assert outcome == ProxyError(500, "An error arises at the time of retrieving associated billing accounts")
    tmf_utils.is_related_party.assert_not_called()


def test_fails_when_user_not_included_in_billing_accounts(cfg, upstream):
    billing_account = {"relatedParty": [{"id": 5}]}
    upstream.reply(BILLING_LOOKUP_URL, body=[billing_account])
    tmf_utils = party_utils(False, [False])
    req = make_request(_customer_with_accounts())

    outcome = make_api(cfg, tmf_utils).execute_post_validation(req)

    assert outcome == ProxyError(403, "Unauthorized to retrieve the information of the given customer")
    tmf_utils.is_related_party.assert_called_once_with(req, billing_account["relatedParty"])


def test_allows_customer_when_user_included_in_billing_account(cfg, upstream):
    billing_account_1 = {"relatedParty": [{"id": 5}]}
    billing_account_2 = {"relatedParty": [{"id": 9}]}
    upstream.reply(BILLING_LOOKUP_URL, body=[billing_account_1, billing_account_2])
    tmf_utils = party_utils(False, [False, True])
    req = make_request(_customer_with_accounts())

    outcome = make_api(cfg, tmf_utils).execute_post_validation(req)

    assert outcome is None
    tmf_utils.has_party_role.assert_called_once_with(req, [{"id": 9}], "owner")
    assert tmf_utils.is_related_party.call_args_list == [
        call(req, billing_account_1["relatedParty"]),
        call(req, billing_account_2["relatedParty"]),
    ]
    assert upstream.requested(BILLING_LOOKUP_URL)


def test_customer_without_accounts_is_denied_without_lookup(cfg, upstream):
    tmf_utils = party_utils(False)

    outcome = make_api(cfg, tmf_utils).execute_post_validation(make_request({"relatedParty": {"id": 3}}))

    assert outcome == ProxyError(403, "Unauthorized to retrieve the information of the given customer")
    assert upstream.calls == []


@pytest.mark.parametrize("body", ["not json", '"just a string"'])
def test_unprocessable_representation(cfg, body):
    outcome = make_api(cfg, MagicMock()).execute_post_validation(make_request(body))
    assert outcome == ProxyError(500, "The retrieved resource cannot be processed")


@pytest.mark.parametrize("accounts", [5, True, "1,2", {"id": 1}])
def test_unprocessable_customer_accounts(cfg, upstream, accounts):
    tmf_utils = party_utils(False)
    body = {"relatedParty": {"id": 3}, "customerAccount": accounts}

    outcome = make_api(cfg, tmf_utils).execute_post_validation(make_request(body))

    assert outcome == ProxyError(500, "The retrieved resource cannot be processed")
    assert upstream.calls == []


def test_account_with_non_string_customer_href(cfg, upstream):
    body = {"customer": {"id": 1, "href": 1}}

    outcome = make_api(cfg, MagicMock()).execute_post_validation(make_request(body))

    assert outcome == ProxyError(500, "The attached customer cannot be retrieved")
    assert upstream.calls == []


def test_scalar_related_party_of_billing_account_is_ignored(cfg, upstream):
    upstream.reply(BILLING_LOOKUP_URL, body=[{"relatedParty": 9}])
    tmf_utils = party_utils(False, [False])
    req = make_request(_customer_with_accounts())

    outcome = make_api(cfg, tmf_utils).execute_post_validation(req)

    assert outcome == ProxyError(403, "Unauthorized to retrieve the information of the given customer")
    tmf_utils.is_related_party.assert_called_once_with(req, [9])
