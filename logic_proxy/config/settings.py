"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_ENDPOINTS = {
    "customer": ("DSCustomer", 8080),
    "billing": ("DSBillingManagement", 8080),
}


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass(frozen=True)
class EndpointConfig:
    """Location of one backing TMF service."""
    path: str
    port: int
    host: str = ""


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str
    secret_key_fallbacks: list[str] = field(default_factory=list)
    session_cookie_secure: bool = True

    # Backing TMF services
    app_host: str = "localhost"
    app_ssl: bool = False
    request_timeout: int = 5
    endpoints: dict[str, EndpointConfig] = field(default_factory=dict)

    def endpoint(self, name: str) -> EndpointConfig:
        """Return the endpoint registered under ``name``.

        Raises:
            KeyError: If the endpoint is not configured
        """
        try:
            return self.endpoints[name]
        except KeyError:
            raise KeyError(f"Endpoint '{name}' is not configured") from None

    def service_url(self, name: str) -> str:
        """Base URL (scheme, host and port) of a backing service."""
        endpoint = self.endpoint(name)
        scheme = "https" if self.app_ssl else "http"
        host = endpoint.host or self.app_host
        return f"{scheme}://{host}:{endpoint.port}"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _parse_int(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be an integer, got {raw!r}") from None


def _load_endpoints(app_host: str) -> dict[str, EndpointConfig]:
    """Read <NAME>_ENDPOINT_PATH / _PORT / _HOST for every known service."""
    endpoints = {}
    for name, (default_path, default_port) in DEFAULT_ENDPOINTS.items():
        prefix = name.upper()
        path = os.environ.get(f"{prefix}_ENDPOINT_PATH", default_path).strip().strip("/")
        port = _parse_int(f"{prefix}_ENDPOINT_PORT", default_port)
        host = os.environ.get(f"{prefix}_ENDPOINT_HOST", "").strip() or app_host
        endpoints[name] = EndpointConfig(path=path, port=port, host=host)
    return endpoints


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if demo_mode:
            secret_key = secrets.token_urlsafe(48)
            os.environ["FLASK_SECRET_KEY"] = secret_key
            print("[demo-mode] Generated temporary FLASK_SECRET_KEY")
        else:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")

    secret_key_fallbacks = [
        key.strip()
        for key in os.environ.get("FLASK_SECRET_KEY_FALLBACKS", "").split(",")
        if key.strip()
    ]

    session_secure_str = os.environ.get("FLASK_SESSION_COOKIE_SECURE")
    session_cookie_secure = (session_secure_str or "true").lower() == "true"

    # Backing services
    app_host = _get_or_generate("TMF_APP_HOST", demo_default="localhost", demo_mode=demo_mode)
    app_ssl = os.environ.get("TMF_APP_SSL", "false").lower() == "true"
    request_timeout = _parse_int("TMF_REQUEST_TIMEOUT", 5)
    endpoints = _load_endpoints(app_host)

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(
        f"[settings] Mode={mode_label}; host={app_host}; "
        f"customer=/{endpoints['customer'].path}; billing=/{endpoints['billing'].path}"
    )

    if demo_mode:
        print("[settings] WARNING: Demo secret key in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        secret_key_fallbacks=secret_key_fallbacks,
        session_cookie_secure=session_cookie_secure,
        app_host=app_host,
        app_ssl=app_ssl,
        request_timeout=request_timeout,
        endpoints=endpoints,
    )
