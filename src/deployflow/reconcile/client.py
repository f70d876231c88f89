"""
Cliente HTTP da API de aplicações do Argo CD.

Wrapper fino sobre `httpx.Client` para os endpoints usados pela
reconciliação:

    GET    /api/v1/session/userinfo
    GET    /api/v1/applications?selector=...
    GET    /api/v1/applications/{name}
    POST   /api/v1/applications
    DELETE /api/v1/applications/{name}?cascade=true

Falhas de transporte e respostas inesperadas viram `ControlPlaneError`
com método, caminho e status nos detalhes. 404 em leitura/remoção não é
erro: significa registro ausente.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from deployflow.core.config.settings import Settings
from deployflow.core.exceptions import ControlPlaneError

logger = logging.getLogger(__name__)

APPLICATIONS = "/api/v1/applications"
USERINFO = "/api/v1/session/userinfo"


class ArgoCDClient:
    """Cliente síncrono da API REST do Argo CD (bearer token)."""

    def __init__(
        self,
        *,
        server: str,
        token: str = "",
        verify: bool = True,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json", "User-Agent": "deployflow"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.server = server.rstrip("/")
        self.has_token = bool(token)
        self.client = httpx.Client(
            base_url=self.server,
            headers=headers,
            verify=verify,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> "ArgoCDClient":
        token_var = str(settings.get("argocd.token_variable", "ARGOCD_AUTH_TOKEN"))
        return cls(
            server=str(settings.get("argocd.server")),
            token=settings.credential(token_var),
            verify=bool(settings.get("argocd.verify_tls", True)),
            timeout=float(settings.get("argocd.timeout", 10.0)),
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ArgoCDClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        logger.debug("argocd request %s %s", method, path)
        try:
            return self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ControlPlaneError(
                message=f"{method} {path} failed: {e.__class__.__name__}: {e}",
                details={"method": method, "path": path, "server": self.server},
                hint="Check that the Argo CD server is reachable (argocd.server / ARGOCD_SERVER).",
            ) from e

    def _unexpected(self, response: httpx.Response) -> ControlPlaneError:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            text = str(body.get("message") or body.get("error") or body)
        else:
            text = response.text
        return ControlPlaneError(
            message=f"{response.request.method} {response.request.url.path} returned {response.status_code}: {text[:200]}",
            details={
                "method": response.request.method,
                "path": response.request.url.path,
                "status_code": response.status_code,
            },
        )

    # -----------------------------
    # Sessão
    # -----------------------------
    def userinfo(self) -> Dict[str, Any]:
        response = self._request("GET", USERINFO)
        if response.status_code in (401, 403):
            return {"loggedIn": False}
        if not response.is_success:
            raise self._unexpected(response)
        return response.json()

    def authenticated(self) -> bool:
        if not self.has_token:
            return False
        return bool(self.userinfo().get("loggedIn"))

    # -----------------------------
    # Aplicações
    # -----------------------------
    def get_application(self, name: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", f"{APPLICATIONS}/{name}")
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise self._unexpected(response)
        return response.json()

    def create_application(self, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", APPLICATIONS, json=body)
        if not response.is_success:
            raise self._unexpected(response)
        return response.json()

    def delete_application(self, name: str, *, cascade: bool = True) -> bool:
        """Remove a aplicação; False quando ela já não existia."""
        response = self._request(
            "DELETE",
            f"{APPLICATIONS}/{name}",
            params={"cascade": "true" if cascade else "false"},
        )
        if response.status_code == 404:
            return False
        if not response.is_success:
            raise self._unexpected(response)
        return True

    def list_applications(self, *, selector: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"selector": selector} if selector else None
        response = self._request("GET", APPLICATIONS, params=params)
        if not response.is_success:
            raise self._unexpected(response)
        # a API devolve `items: null` quando não há aplicações
        return list(response.json().get("items") or [])
