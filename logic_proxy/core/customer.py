"""Customer Management API controller.

Decides whether the caller may list, read, create, update or delete
Customers and Customer Accounts, and filters what a successful GET returns.

Ownership always comes down to the ``owner`` role on a Customer's
``relatedParty``. For a Customer Account the parent Customer is resolved
first. Read access is also granted to parties attached to any Billing
Account of the Customer.

Usage:
    api = CustomerAPI(load_settings())
    outcome = api.check_permissions(proxy_request)
    if outcome is not None:
        return jsonify(outcome.to_dict()), outcome.status
"""
from __future__ import annotations
import logging
from typing import Any, Optional
from urllib.parse import urlsplit

from logic_proxy.config import AppConfig

from . import tmf_utils as default_tmf_utils
from . import utils as default_utils
from .exceptions import ProxyError
from .http_client import TmfClient
from .request import ProxyRequest, RequestTarget, ResourceKind, classify, parse_body

logger = logging.getLogger(__name__)

OWNER_ROLE = "owner"
CUSTOMER_API_PATH = "api/customerManagement/v2"
BILLING_ACCOUNT_PATH = "api/billingManagement/v2/billingAccount"


def _party_list(related_party: Any) -> list:
    """Customers carry a single relatedParty object or a list of them."""
    if related_party is None:
        return []
    if isinstance(related_party, list):
        return related_party
    return [related_party]


def _href_id(href: Any) -> Optional[str]:
    if not isinstance(href, str):
        return None
    return urlsplit(href).path.rstrip("/").rsplit("/", 1)[-1]


class CustomerAPI:
    """Permission checks for the Customer Management API.

    Args:
        cfg: Application configuration (customer and billing endpoints)
        client: Lookup client for related resources
        utils: Session guard exposing ``validate_logged_in``
        tmf_utils: Relationship helpers exposing ``has_party_role``,
            ``is_related_party`` and ``filter_related_party_fields``
    """

    service_name = "customer"

    def __init__(self, cfg: AppConfig, client: Optional[TmfClient] = None, utils=None, tmf_utils=None):
        self.client = client if client is not None else TmfClient(cfg.request_timeout)
        self.utils = utils if utils is not None else default_utils
        self.tmf_utils = tmf_utils if tmf_utils is not None else default_tmf_utils

        customer = cfg.endpoint("customer")
        billing = cfg.endpoint("billing")
        self.base_path = f"/{customer.path}/{CUSTOMER_API_PATH}"
        self.customer_server = cfg.service_url("customer")
        self.billing_account_url = f"{cfg.service_url('billing')}/{billing.path}/{BILLING_ACCOUNT_PATH}"

        self._validators = {
            "GET": self._validate_retrieving,
            "POST": self._validate_creation,
            "PATCH": self._validate_update,
            "DELETE": self._validate_update,
        }

    # ─────────────────────────────────────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────────────────────────────────────
    def check_permissions(self, request: ProxyRequest) -> Optional[ProxyError]:
        """Decide whether ``request`` may be forwarded to the Customer service.

        Returns:
            None if the request is allowed, the denial otherwise
        """
        try:
            target = classify(request, self.base_path)

            outcome = self.utils.validate_logged_in(request)
            if outcome is None:
                outcome = self._validators[target.method](request, target)
        except ProxyError as err:
            outcome = err

        if outcome is not None:
            self._log_denial(request, outcome)
        return outcome

    def execute_post_validation(self, request: ProxyRequest) -> Optional[ProxyError]:
        """Check that the caller may see the representation in ``request.body``.

        Called once a GET has been answered by the Customer service.
        """
        try:
            try:
                body = parse_body(request.body)
            except ProxyError:
                raise ProxyError(500, "The retrieved resource cannot be processed") from None

            # Listings were already restricted by check_permissions
            if isinstance(body, list):
                return None
            if not isinstance(body, dict):
                raise ProxyError(500, "The retrieved resource cannot be processed")

            if "customer" in body:
                customer = self._retrieve_customer(body["customer"])
            else:
                customer = body

            self._check_customer_visibility(request, customer)
        except ProxyError as err:
            self._log_denial(request, err)
            return err

        return None

    # ─────────────────────────────────────────────────────────────────────
    # Validators
    # ─────────────────────────────────────────────────────────────────────
    def _validate_retrieving(self, request: ProxyRequest, target: RequestTarget) -> Optional[ProxyError]:
        if not target.is_collection:
            # Ownership of single resources is enforced in post validation
            return None

        if target.kind is ResourceKind.CUSTOMER:
            return self.tmf_utils.filter_related_party_fields(request)

        raise ProxyError(403, "Unauthorized to retrieve the list of customer accounts")

    def _validate_creation(self, request: ProxyRequest, target: RequestTarget) -> None:
        if not target.is_collection:
            raise ProxyError(405, "Method not allowed")

        if target.kind is ResourceKind.CUSTOMER:
            self._validate_customer_creation(request, target.payload)
        else:
            self._validate_customer_account_creation(request, target.payload)

    def _validate_customer_creation(self, request: ProxyRequest, body: dict) -> None:
        related_party = body.get("relatedParty")
        if related_party is None or related_party == "":
            raise ProxyError(422, "Unable to create customer without specifying the related party")

        if not self.tmf_utils.has_party_role(request, _party_list(related_party), OWNER_ROLE):
            raise ProxyError(403, "Related Party does not match with the user making the request")

        if "customerAccount" in body:
            raise ProxyError(403, "Customer Account cannot be manually modified")

    def _validate_customer_account_creation(self, request: ProxyRequest, body: dict) -> None:
        customer_ref = body.get("customer")
        if not customer_ref or not isinstance(customer_ref, dict):
            raise ProxyError(422, "Customer Accounts must be associated to a Customer")

        if customer_ref.get("id") is not None and customer_ref.get("href"):
            if _href_id(customer_ref["href"]) != str(customer_ref["id"]):
                raise ProxyError(422, "Customer ID and Customer HREF mismatch")

        customer = self._retrieve_customer(customer_ref)

        if not self.tmf_utils.has_party_role(request, _party_list(customer.get("relatedParty")), OWNER_ROLE):
            raise ProxyError(403, "The given Customer does not belong to the user making the request")

    def _validate_update(self, request: ProxyRequest, target: RequestTarget) -> None:
        """Shared by PATCH and DELETE."""
        if target.is_collection:
            raise ProxyError(405, "Method not allowed")

        resource = self._retrieve_target(request)

        if target.kind is ResourceKind.CUSTOMER:
            customer = resource
        else:
            customer = self._retrieve_customer(resource.get("customer"))

        if not self.tmf_utils.has_party_role(request, _party_list(customer.get("relatedParty")), OWNER_ROLE):
            raise ProxyError(403, "Unauthorized to update/delete non-owned resources")

        if target.method == "PATCH":
            if target.kind is ResourceKind.CUSTOMER and "relatedParty" in target.payload:
                raise ProxyError(403, "Related Party cannot be modified")
            if target.kind is ResourceKind.CUSTOMER_ACCOUNT and "customer" in target.payload:
                raise ProxyError(403, "Customer cannot be modified")

    # ─────────────────────────────────────────────────────────────────────
    # Visibility
    # ─────────────────────────────────────────────────────────────────────
    def _check_customer_visibility(self, request: ProxyRequest, customer: dict) -> None:
        """Owners and parties of an associated billing account may read a Customer."""
        if self.tmf_utils.has_party_role(request, _party_list(customer.get("relatedParty")), OWNER_ROLE):
            return

        accounts = customer.get("customerAccount") or []
        if not isinstance(accounts, list):
            raise ProxyError(500, "The retrieved resource cannot be processed")

        account_ids = [
            str(account["id"])
            for account in accounts
            if isinstance(account, dict) and account.get("id") is not None
        ]
        if not account_ids:
            raise ProxyError(403, "Unauthorized to retrieve the information of the given customer")

        billing_accounts = self._retrieve_billing_accounts(account_ids)

        if not any(
            self.tmf_utils.is_related_party(request, _party_list(account.get("relatedParty")))
            for account in billing_accounts
            if isinstance(account, dict)
        ):
            raise ProxyError(403, "Unauthorized to retrieve the information of the given customer")

    # ─────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────
    def _retrieve_target(self, request: ProxyRequest) -> dict:
        """Fetch the resource addressed by the request itself."""
        result = self.client.get(f"{self.customer_server}{request.path}")

        if result.status == 404:
            raise ProxyError(404, "The required resource does not exist")
        if not result.ok or not isinstance(result.body, dict):
            raise ProxyError(500, "The required resource cannot be retrieved")
        return result.body

    def _customer_url(self, customer_ref: Any) -> Optional[str]:
        if not isinstance(customer_ref, dict):
            return None
        if customer_ref.get("href"):
            if not isinstance(customer_ref["href"], str):
                return None
            # Only the path is trusted; the host is always the customer service
            return f"{self.customer_server}{urlsplit(customer_ref['href']).path}"
        if customer_ref.get("id") is not None:
            return f"{self.customer_server}{self.base_path}/customer/{customer_ref['id']}"
        return None

    def _retrieve_customer(self, customer_ref: Any) -> dict:
        """Resolve a customer reference. Every failure, 404 included, is a 500."""
        url = self._customer_url(customer_ref)
        if url is None:
            raise ProxyError(500, "The attached customer cannot be retrieved")

        result = self.client.get(url)
        if not result.ok or not isinstance(result.body, dict):
            raise ProxyError(500, "The attached customer cannot be retrieved")
        return result.body

    def _retrieve_billing_accounts(self, account_ids: list[str]) -> list:
        result = self.client.get(f"{self.billing_account_url}?customerAccount.id={','.join(account_ids)}")
        if not result.ok or not isinstance(result.body, list):
            raise ProxyError(500, "An error arises at the time of retrieving associated billing accounts")
        return result.body

    @staticmethod
    def _log_denial(request: ProxyRequest, outcome: ProxyError) -> None:
        party = request.user.party_id if request.user else "anonymous"
        log = logger.warning if outcome.status >= 500 else logger.info
        log(f"Denied {request.method} {request.path} for {party}: [{outcome.status}] {outcome.message}")
