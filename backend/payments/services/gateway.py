"""
Easebuzz hosted-checkout adapter.

Three SHA-512 signatures are involved:

* request hash ``key|txnid|amount|productinfo|firstname|email|udf1..udf10|salt``
  sent with the initiate call;
* response ("reverse") hash ``salt|status|udf10..udf1|email|firstname|productinfo|amount|txnid|key``
  which the gateway puts in every callback;
* status hash ``key|txnid|salt`` for the transaction retrieve endpoint.

Responses are parsed into small typed results. A response shape we do not
recognise is reported as ``GatewayUnreachableError``, never as a guessed status.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlencode
from uuid import uuid4

import requests
from django.conf import settings

from core.exceptions import GatewaySignatureError, GatewayUnreachableError

logger = logging.getLogger(__name__)

UDF_COUNT = 10
TXNID_MAX_LENGTH = 40


def new_transaction_id() -> str:
    return f"TXN{uuid4().hex.upper()}"[:TXNID_MAX_LENGTH]


def format_amount(cents: int) -> str:
    return f"{cents / 100:.2f}"


def _sha512(value: str) -> str:
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


def _field(payload: Mapping[str, Any], name: str) -> str:
    value = payload.get(name)
    return "" if value is None else str(value)


@dataclass
class PaymentRequest:
    txnid: str
    amount: str
    productinfo: str
    firstname: str
    email: str
    phone: str = ""
    surl: str = ""
    furl: str = ""
    udf: list[str] = field(default_factory=list)

    def udf_values(self) -> list[str]:
        values = [str(v or "") for v in self.udf[:UDF_COUNT]]
        return values + [""] * (UDF_COUNT - len(values))


@dataclass
class GatewayInitiateResult:
    ok: bool
    access_key: str = ""
    payment_url: str = ""
    raw: dict = field(default_factory=dict)


@dataclass
class GatewayStatusResult:
    found: bool
    status: str = ""
    gateway_transaction_id: str = ""
    amount: str = ""
    added_on: str = ""
    raw: dict = field(default_factory=dict)


class EasebuzzGateway:
    PAY_BASE_URLS = {
        "TEST": "https://testpay.easebuzz.in",
        "PROD": "https://pay.easebuzz.in",
    }
    DASHBOARD_BASE_URLS = {
        "TEST": "https://testdashboard.easebuzz.in",
        "PROD": "https://dashboard.easebuzz.in",
    }
    INITIATE_PATH = "/payment/initiateLink"
    RETRIEVE_PATH = "/transaction/v2.1/retrieve"

    def __init__(
        self,
        *,
        key: str,
        salt: str,
        env: str = "TEST",
        timeout: float = 15.0,
        use_stub: bool = False,
        preview_base_url: str = "",
    ):
        self.key = key
        self.salt = salt
        self.env = "PROD" if str(env).upper() == "PROD" else "TEST"
        self.timeout = timeout
        self.use_stub = use_stub
        self.preview_base_url = preview_base_url.rstrip("/")

    @property
    def pay_base_url(self) -> str:
        return self.PAY_BASE_URLS[self.env]

    @property
    def dashboard_base_url(self) -> str:
        return self.DASHBOARD_BASE_URLS[self.env]

    # signatures

    def request_hash(self, req: PaymentRequest) -> str:
        parts = [
            self.key,
            req.txnid,
            req.amount,
            req.productinfo,
            req.firstname,
            req.email,
            *req.udf_values(),
            self.salt,
        ]
        return _sha512("|".join(parts))

    def response_hash(self, payload: Mapping[str, Any]) -> str:
        udfs = [_field(payload, f"udf{i}") for i in range(UDF_COUNT, 0, -1)]
        parts = [
            self.salt,
            _field(payload, "status"),
            *udfs,
            _field(payload, "email"),
            _field(payload, "firstname"),
            _field(payload, "productinfo"),
            _field(payload, "amount"),
            _field(payload, "txnid"),
            self.key,
        ]
        return _sha512("|".join(parts))

    def verify_callback(self, payload: Mapping[str, Any]) -> bool:
        received = _field(payload, "hash").strip().lower()
        if not received:
            return False
        return hmac.compare_digest(self.response_hash(payload), received)

    def ensure_callback(self, payload: Mapping[str, Any]) -> None:
        if not self.verify_callback(payload):
            raise GatewaySignatureError(f"Callback hash mismatch for {_field(payload, 'txnid') or '<no txnid>'}")

    def status_hash(self, txnid: str) -> str:
        return _sha512(f"{self.key}|{txnid}|{self.salt}")

    # HTTP

    def _post(self, url: str, data: dict) -> Any:
        try:
            response = requests.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Easebuzz call to %s failed: %s", url, exc)
            raise GatewayUnreachableError(str(exc)) from exc

    def initiate(self, req: PaymentRequest) -> GatewayInitiateResult:
        if self.use_stub:
            return self._stub_initiate(req)

        data = {
            "key": self.key,
            "txnid": req.txnid,
            "amount": req.amount,
            "productinfo": req.productinfo,
            "firstname": req.firstname,
            "email": req.email,
            "phone": req.phone,
            "surl": req.surl,
            "furl": req.furl,
            "hash": self.request_hash(req),
        }
        for index, value in enumerate(req.udf_values(), start=1):
            if value:
                data[f"udf{index}"] = value

        body = self._post(f"{self.pay_base_url}{self.INITIATE_PATH}", data)
        if not isinstance(body, dict):
            raise GatewayUnreachableError("Unexpected initiate response shape")

        access_key = body.get("data")
        if body.get("status") == 1 and isinstance(access_key, str) and access_key:
            return GatewayInitiateResult(
                ok=True,
                access_key=access_key,
                payment_url=f"{self.pay_base_url}/pay/{access_key}",
                raw=body,
            )
        logger.warning("Easebuzz rejected initiate for %s: %s", req.txnid, body.get("error_desc") or body.get("data"))
        return GatewayInitiateResult(ok=False, raw=body)

    def _stub_initiate(self, req: PaymentRequest) -> GatewayInitiateResult:
        access_key = f"stub_{uuid4().hex}"
        query = urlencode({"txnid": req.txnid, "amount": req.amount, "access_key": access_key})
        return GatewayInitiateResult(
            ok=True,
            access_key=access_key,
            payment_url=f"{self.preview_base_url}/payments/preview?{query}",
            raw={"status": 1, "data": access_key, "stub": True},
        )

    def check_status(self, txnid: str) -> GatewayStatusResult:
        if self.use_stub:
            return GatewayStatusResult(found=False, raw={"status": False, "msg": "Record not found", "stub": True})

        data = {"key": self.key, "txnid": txnid, "hash": self.status_hash(txnid)}
        body = self._post(f"{self.dashboard_base_url}{self.RETRIEVE_PATH}", data)
        return self.parse_status_response(txnid, body)

    def parse_status_response(self, txnid: str, body: Any) -> GatewayStatusResult:
        if not isinstance(body, dict):
            raise GatewayUnreachableError("Unexpected status response shape")

        msg = body.get("msg")
        if isinstance(msg, str):
            if "not found" in msg.lower():
                return GatewayStatusResult(found=False, raw=body)
            raise GatewayUnreachableError(f"Unexpected status message: {msg[:120]}")

        if isinstance(msg, list):
            matches = [item for item in msg if isinstance(item, dict) and item.get("txnid") == txnid]
            if not matches:
                return GatewayStatusResult(found=False, raw=body)
            record = matches[-1]
        elif isinstance(msg, dict):
            record = msg
        else:
            raise GatewayUnreachableError("Status response has no transaction record")

        status = record.get("status")
        if not isinstance(status, str) or not status.strip():
            raise GatewayUnreachableError("Transaction record has no status")

        return GatewayStatusResult(
            found=True,
            status=status.strip().lower(),
            gateway_transaction_id=_field(record, "easepayid"),
            amount=_field(record, "amount"),
            added_on=_field(record, "addedon"),
            raw=body,
        )


def _should_use_stub() -> bool:
    if getattr(settings, "EASEBUZZ_USE_STUB", False):
        return True
    return not (getattr(settings, "EASEBUZZ_KEY", "") and getattr(settings, "EASEBUZZ_SALT", ""))


def get_gateway() -> EasebuzzGateway:
    return EasebuzzGateway(
        key=settings.EASEBUZZ_KEY,
        salt=settings.EASEBUZZ_SALT,
        env=settings.EASEBUZZ_ENV,
        timeout=settings.EASEBUZZ_TIMEOUT_SECONDS,
        use_stub=_should_use_stub(),
        preview_base_url=settings.FRONTEND_URL,
    )
