"""
Thin client for the Evolution WhatsApp gateway.

Only the two endpoints the notifications need are wrapped:
GET  {api_url}/instance/fetchInstances
POST {api_url}/message/sendText/{instance}
"""
import httpx
import logging
from typing import Any, Dict, List, Optional

from kitchen_ops.config import settings

logger = logging.getLogger(__name__)


class EvolutionAPIError(Exception):
    """Non-2xx answer from the gateway"""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
        super().__init__(
            f"Evolution API error ({status_code}): {message or 'unknown error'}"
        )


def _instance_name(instance: Dict[str, Any]) -> Optional[str]:
    nested = instance.get("instance") or {}
    return nested.get("instanceName") or instance.get("instanceName")


def _instance_state(instance: Dict[str, Any]) -> Optional[str]:
    nested = instance.get("instance") or {}
    return nested.get("state") or instance.get("state")


class EvolutionClient:
    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        default_instance: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_url = (api_url or settings.evolution_api_url).rstrip("/")
        self.api_key = api_key or settings.evolution_api_key
        self.default_instance = default_instance or settings.evolution_instance
        self._http = http_client or httpx.Client(timeout=settings.evolution_timeout_seconds)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    def fetch_instances(self) -> List[Dict[str, Any]]:
        response = self._http.get(f"{self.api_url}/instance/fetchInstances", headers=self._headers())
        body = self._json(response)
        if response.is_error:
            raise EvolutionAPIError(response.status_code, body)
        return body if isinstance(body, list) else []

    def list_instances(self) -> List[Dict[str, Optional[str]]]:
        """Instances as plain {name, state} dicts"""
        return [
            {"name": _instance_name(inst), "state": _instance_state(inst)}
            for inst in self.fetch_instances()
        ]

    def find_active_instance(self) -> str:
        """
        Pick the instance to send through: the configured one when it is open,
        else any open instance, else the first listed, else the configured default.
        Gateway failures fall back to the configured default.
        """
        try:
            instances = self.fetch_instances()
        except (httpx.HTTPError, EvolutionAPIError) as e:
            logger.warning(f"Could not list Evolution instances, using default: {e}")
            return self.default_instance

        for inst in instances:
            if _instance_name(inst) == self.default_instance and _instance_state(inst) == "open":
                return self.default_instance
        for inst in instances:
            if _instance_state(inst) == "open":
                return _instance_name(inst)
        if instances:
            logger.warning("No open Evolution instance, using the first one listed")
            return _instance_name(instances[0]) or self.default_instance
        logger.warning("No Evolution instance found, using default")
        return self.default_instance

    def send_text(self, instance: str, number: str, text: str) -> Dict[str, Any]:
        response = self._http.post(
            f"{self.api_url}/message/sendText/{instance}",
            headers=self._headers(),
            json={"number": number, "text": text},
        )
        body = self._json(response)
        if response.is_error:
            raise EvolutionAPIError(response.status_code, body)
        return body

    def close(self):
        self._http.close()


_shared_client: Optional[EvolutionClient] = None


def get_shared_client() -> EvolutionClient:
    """Process-wide gateway client so requests and scheduler ticks reuse one connection pool"""
    global _shared_client
    if _shared_client is None:
        _shared_client = EvolutionClient()
    return _shared_client


def close_shared_client():
    """Called on application shutdown"""
    global _shared_client
    if _shared_client is not None:
        _shared_client.close()
        _shared_client = None


def normalize_phone(phone: str) -> str:
    """Digits only; 11-digit national numbers get the Brazilian country code."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) == 11 and not digits.startswith("55"):
        digits = "55" + digits
    return digits
