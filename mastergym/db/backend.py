from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import httpx

from mastergym.core import Settings, get_settings
from mastergym.db.models import (
    BackupResponse,
    ClientCreateRequest,
    ClientResponse,
    ClientUpdateRequest,
    LoginResponse,
    MeasurementCreateRequest,
    MeasurementResponse,
    Page,
    PaymentCreateRequest,
    PaymentResponse,
    Snapshot,
)

logger = logging.getLogger(__name__)

MAX_MEASUREMENTS_PAGE = 500

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


class BackendError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    @property
    def user_message(self) -> str:
        """
        Human readable reason, taken from the backend's error JSON when present.

        Validation errors come back as
        ``{"message": ..., "details": {"fieldErrors": {"field": "reason"}}}``.
        """

        text = str(self)
        if self.detail:
            try:
                body = json.loads(self.detail)
            except ValueError:
                body = None
            if isinstance(body, dict):
                details = body.get("details")
                field_errors = details.get("fieldErrors") if isinstance(details, dict) else None
                if not isinstance(field_errors, dict):
                    field_errors = {}
                if "paymentDate" in field_errors:
                    text = f"paymentDate: {field_errors['paymentDate']}"
                elif field_errors:
                    text = "; ".join(f"{field}: {reason}" for field, reason in field_errors.items())
                else:
                    text = body.get("message") or text
            else:
                text = self.detail

        lowered = text.lower()
        if "paymentdate" in lowered or "futura" in lowered:
            return "La fecha de pago no puede ser futura. Selecciona hoy o una fecha anterior."
        return text


class AuthenticationError(BackendError):
    pass


class MasterGymClient:
    """
    Async REST client for the MasterGym backend.

    Holds the bearer token for the session. A 401/403 answer drops it; when
    API credentials are configured the next request logs in again.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._token: str | None = None
        self._http = httpx.AsyncClient(
            base_url=str(self._settings.api_base_url).rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=15.0,
            transport=transport,
        )

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def close(self) -> None:
        await self._http.aclose()

    # ---- transport helpers ----

    async def _ensure_session(self) -> None:
        if self._token is None and self._settings.has_credentials:
            await self.login(self._settings.api_username, self._settings.api_password)

    def _auth_headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        await self._ensure_session()
        response = await self._http.request(
            method,
            path,
            params=params,
            json=json_body,
            headers={**self._auth_headers(), **(headers or {})},
        )
        if response.status_code >= 400:
            if response.status_code in (401, 403):
                self._token = None
                raise AuthenticationError(
                    f"{method} {path} failed: {response.status_code}",
                    status_code=response.status_code,
                    detail=response.text,
                )
            raise BackendError(
                f"{method} {path} failed: {response.status_code}",
                status_code=response.status_code,
                detail=response.text,
            )
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json() if response.content else None

    async def _send_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = await self._request(method, path, json_body=body, headers=headers)
        return response.json() if response.content else None

    async def _download(self, path: str, params: dict[str, Any] | None = None) -> tuple[bytes, str | None]:
        response = await self._request("GET", path, params=params)
        filename = None
        match = _FILENAME_RE.search(response.headers.get("content-disposition", ""))
        if match:
            filename = match.group(1)
        return response.content, filename

    # ---- auth ----

    async def login(self, username: str, password: str) -> LoginResponse:
        response = await self._http.post(
            "/api/auth/login",
            json={"username": username, "password": password},
        )
        if response.status_code >= 400:
            raise AuthenticationError(
                "POST /api/auth/login failed",
                status_code=response.status_code,
                detail=response.text,
            )
        login = LoginResponse.model_validate(response.json())
        self._token = login.token
        logger.debug("Logged in to backend as %s", username)
        return login

    # ---- clients ----

    async def list_clients(self, *, page: int = 0, size: int = 200) -> list[ClientResponse]:
        data = await self._get_json(
            "/api/clients",
            params={"page": page, "size": size, "sort": "fechaRegistro,desc"},
        )
        return Page[ClientResponse].model_validate(data).content

    async def get_client(self, client_id: int) -> ClientResponse:
        data = await self._get_json(f"/api/clients/{client_id}")
        return ClientResponse.model_validate(data)

    async def create_client(self, request: ClientCreateRequest) -> ClientResponse:
        data = await self._send_json("POST", "/api/clients", request.to_payload())
        return ClientResponse.model_validate(data)

    async def update_client(self, client_id: int, request: ClientUpdateRequest) -> ClientResponse:
        data = await self._send_json("PUT", f"/api/clients/{client_id}", request.to_payload())
        return ClientResponse.model_validate(data)

    async def delete_client(self, client_id: int) -> None:
        await self._send_json("DELETE", f"/api/clients/{client_id}")

    async def send_reminder(self, client_id: int) -> None:
        await self._send_json("POST", f"/api/clients/{client_id}/reminder")

    # ---- payments ----

    async def list_payments(self, *, page: int = 0, size: int = 200) -> list[PaymentResponse]:
        data = await self._get_json(
            "/api/payments",
            params={"page": page, "size": size, "sort": "paymentDate,desc"},
        )
        return Page[PaymentResponse].model_validate(data).content

    async def create_payment(self, request: PaymentCreateRequest) -> PaymentResponse:
        data = await self._send_json("POST", "/api/payments", request.to_payload())
        return PaymentResponse.model_validate(data)

    async def delete_payment(self, payment_id: int) -> None:
        await self._send_json("DELETE", f"/api/payments/{payment_id}")

    # ---- measurements ----

    async def list_measurements(
        self,
        *,
        client_id: int | None = None,
        page: int = 0,
        size: int = MAX_MEASUREMENTS_PAGE,
    ) -> list[MeasurementResponse]:
        if size > MAX_MEASUREMENTS_PAGE:
            raise ValueError(f"size must be at most {MAX_MEASUREMENTS_PAGE}")

        params: dict[str, Any] = {"page": page, "size": size, "sort": "fecha,desc"}
        if client_id is not None:
            params["clientId"] = client_id
        data = await self._get_json("/api/measurements", params=params)
        return Page[MeasurementResponse].model_validate(data).content

    async def get_measurement(self, measurement_id: int) -> MeasurementResponse:
        data = await self._get_json(f"/api/measurements/{measurement_id}")
        return MeasurementResponse.model_validate(data)

    async def create_measurement(self, request: MeasurementCreateRequest) -> MeasurementResponse:
        data = await self._send_json("POST", "/api/measurements", request.to_payload())
        return MeasurementResponse.model_validate(data)

    async def delete_measurement(self, measurement_id: int) -> None:
        await self._send_json("DELETE", f"/api/measurements/{measurement_id}")

    async def download_measurement_pdf(self, measurement_id: int) -> tuple[bytes, str]:
        content, filename = await self._download(f"/api/measurements/{measurement_id}/report/pdf")
        return content, filename or f"medicion_{measurement_id}.pdf"

    async def download_client_measurements_pdf(self, client_id: int) -> tuple[bytes, str]:
        content, filename = await self._download(
            "/api/measurements/report/pdf",
            params={"clientId": client_id},
        )
        return content, filename or f"mediciones_{client_id}.pdf"

    # ---- backup ----

    async def run_backup(self, token: str | None = None) -> BackupResponse:
        headers = {"X-BACKUP-TOKEN": token} if token else None
        data = await self._send_json("POST", "/api/backup", headers=headers)
        return BackupResponse.model_validate(data or {"success": False})

    # ---- aggregate ----

    async def load_snapshot(self) -> Snapshot:
        """
        Fetch clients, payments and measurements concurrently.
        """

        # Log in once up front so the three requests share the token
        await self._ensure_session()
        clients, payments, measurements = await asyncio.gather(
            self.list_clients(),
            self.list_payments(),
            self.list_measurements(),
        )
        return Snapshot(clients=clients, payments=payments, measurements=measurements)


_backend_client: MasterGymClient | None = None


def get_backend_client() -> MasterGymClient:
    """
    Lazy singleton for MasterGymClient.
    """

    global _backend_client
    if _backend_client is None:
        _backend_client = MasterGymClient()
    return _backend_client
