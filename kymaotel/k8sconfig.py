"""Connection settings for the Kubernetes API, from the environment or a kubeconfig."""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

import yaml

SERVICE_ACCOUNT_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"
SERVICE_ACCOUNT_CA_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"


class AuthType(str, Enum):
    """How to authenticate to the Kubernetes API server."""

    NONE = "none"
    SERVICE_ACCOUNT = "serviceAccount"
    KUBE_CONFIG = "kubeConfig"


@dataclass
class APIConfig:
    """Options for connecting to the Kubernetes API."""

    auth_type: Union[AuthType, str]
    context: str = ""

    def validate(self) -> None:
        """Raise ValueError if the auth type is not one of the known kinds."""
        try:
            AuthType(self.auth_type)
        except ValueError:
            raise ValueError(f"invalid authType for kubernetes: {self.auth_type}") from None


@dataclass
class RestConfig:
    """Where the API server is and how to reach it."""

    host: str = ""
    insecure: bool = False
    bearer_token: str = ""
    bearer_token_file: str = ""
    ca_file: str = ""
    ca_data: bytes = b""
    cert_file: str = ""
    cert_data: bytes = b""
    key_file: str = ""
    key_data: bytes = b""
    server_name: str = ""
    use_system_proxy: bool = False


def _join_host_port(host: str, port: str) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def _in_cluster_host() -> str:
    host = os.environ.get("KUBERNETES_SERVICE_HOST", "")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "")
    if not host or not port:
        raise ValueError(
            "unable to load k8s config, KUBERNETES_SERVICE_HOST and "
            "KUBERNETES_SERVICE_PORT must be defined"
        )
    return "https://" + _join_host_port(host, port)


def _in_cluster_config(host: str) -> RestConfig:
    token_path = Path(SERVICE_ACCOUNT_TOKEN_PATH)
    token = token_path.read_text()
    ca_path = Path(SERVICE_ACCOUNT_CA_PATH)
    return RestConfig(
        host=host,
        bearer_token=token,
        bearer_token_file=str(token_path),
        ca_file=str(ca_path) if ca_path.is_file() else "",
    )


def _kubeconfig_paths() -> list[Path]:
    env = os.environ.get("KUBECONFIG", "")
    if env:
        return [Path(p).expanduser() for p in env.split(os.pathsep) if p]
    return [Path.home() / ".kube" / "config"]


_SECTIONS = (("clusters", "cluster"), ("contexts", "context"), ("users", "user"))


def _load_kubeconfig() -> tuple[str, dict[str, dict[str, tuple[dict[str, Any], Path]]]]:
    """Merge the kubeconfig files; the first file that names an entry wins."""
    merged: dict[str, dict[str, tuple[dict[str, Any], Path]]] = {s: {} for s, _ in _SECTIONS}
    current = ""
    for path in _kubeconfig_paths():
        try:
            text = path.read_text()
        except FileNotFoundError:
            continue
        try:
            doc = yaml.safe_load(text) or {}
        except yaml.YAMLError as err:
            raise ValueError(f'error loading config file "{path}": {err}') from err
        if not isinstance(doc, dict):
            raise ValueError(f'error loading config file "{path}": not a mapping')
        base = path.resolve().parent
        current = current or str(doc.get("current-context") or "")
        for section, inner in _SECTIONS:
            for entry in doc.get(section) or []:
                if isinstance(entry, dict) and entry.get("name"):
                    merged[section].setdefault(str(entry["name"]), (dict(entry.get(inner) or {}), base))
    return current, merged


def _resolve_path(base: Path, value: Any) -> str:
    if not value:
        return ""
    path = Path(str(value)).expanduser()
    return str(path if path.is_absolute() else base / path)


def _decode(value: Any) -> bytes:
    return base64.b64decode(value) if value else b""


def _kubeconfig_rest_config(context_override: str) -> RestConfig:
    current, merged = _load_kubeconfig()
    if not any(merged.values()) and not current:
        raise ValueError("invalid configuration: no configuration has been provided")
    context_name = context_override or current
    if not context_name:
        raise ValueError("invalid configuration: no configuration has been provided")
    if context_name not in merged["contexts"]:
        raise ValueError(f"context was not found for specified context: {context_name}")
    context, _ = merged["contexts"][context_name]

    cluster_name = str(context.get("cluster") or "")
    if cluster_name not in merged["clusters"]:
        raise ValueError(f'invalid configuration: cluster "{cluster_name}" not found')
    cluster, cluster_base = merged["clusters"][cluster_name]
    server = str(cluster.get("server") or "")
    if not server:
        raise ValueError(f'invalid configuration: no server found for cluster "{cluster_name}"')

    user: dict[str, Any] = {}
    user_base = cluster_base
    user_name = str(context.get("user") or "")
    if user_name in merged["users"]:
        user, user_base = merged["users"][user_name]

    return RestConfig(
        host=server,
        insecure=bool(cluster.get("insecure-skip-tls-verify", False)),
        ca_file=_resolve_path(cluster_base, cluster.get("certificate-authority")),
        ca_data=_decode(cluster.get("certificate-authority-data")),
        server_name=str(cluster.get("tls-server-name") or ""),
        bearer_token=str(user.get("token") or ""),
        bearer_token_file=_resolve_path(user_base, user.get("tokenFile")),
        cert_file=_resolve_path(user_base, user.get("client-certificate")),
        cert_data=_decode(user.get("client-certificate-data")),
        key_file=_resolve_path(user_base, user.get("client-key")),
        key_data=_decode(user.get("client-key-data")),
    )


def create_rest_config(api_config: APIConfig) -> RestConfig:
    """Build API connection settings from the given options.

    The result never uses the system proxy, since the API is local to the cluster.
    """
    api_config.validate()
    auth_type = AuthType(api_config.auth_type)

    host = ""
    if auth_type is not AuthType.KUBE_CONFIG:
        host = _in_cluster_host()

    if auth_type is AuthType.KUBE_CONFIG:
        try:
            config = _kubeconfig_rest_config(api_config.context)
        except (ValueError, OSError) as err:
            raise ValueError(
                f"error connecting to k8s with auth_type={AuthType.KUBE_CONFIG.value}: {err}"
            ) from err
    elif auth_type is AuthType.NONE:
        config = RestConfig(host=host, insecure=True)
    else:
        config = _in_cluster_config(host)

    config.use_system_proxy = False
    return config