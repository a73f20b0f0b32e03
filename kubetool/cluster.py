"""Kubernetes cluster client for replication controllers and pods."""

import json
import logging
from typing import Callable, Optional, TypeVar

import kubernetes
import urllib3
from kubernetes import config
from kubernetes.client import ApiClient, CoreV1Api, VersionApi
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from pydantic import BaseModel, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import ALL_NAMESPACES, Settings
from .errors import ControllerNotFoundError, DecodeError, TransportError
from .models import (
    Pod,
    PodList,
    ReplicationController,
    ReplicationControllerList,
    Selector,
    format_selector,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"
MERGE_PATCH = "application/merge-patch+json"

M = TypeVar("M", bound=BaseModel)

# Reads are idempotent and may be retried; patch and delete never are.
# Callers polling through these reads see a TransportError only after the
# last attempt.
read_retry = retry(
    retry=retry_if_exception_type(TransportError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def decode(model: type[M], raw: bytes) -> M:
    """
    Decode a raw API response body.

    Args:
        model: Model to validate against
        raw: Response body

    Returns:
        Decoded model

    Raises:
        DecodeError: If the body is not a valid object of that kind
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    try:
        return model.model_validate_json(text)
    except ValidationError as e:
        logger.debug(f"Failed to decode {model.__name__}: {e}")
        raise DecodeError(text) from e


class ClusterClient:
    """Synchronous access to the cluster for rollout operations."""

    def __init__(
        self,
        settings: Settings,
        core_v1: Optional[CoreV1Api] = None,
        version_api: Optional[VersionApi] = None,
    ):
        """
        Initialize cluster client.

        Args:
            settings: Runtime settings (namespace, kubeconfig, context)
            core_v1: Preconfigured CoreV1Api; built from kubeconfig when omitted
            version_api: Preconfigured VersionApi

        Raises:
            TransportError: If the kubeconfig cannot be loaded
        """
        self.settings = settings
        self.default_namespace = DEFAULT_NAMESPACE
        self._api_client: Optional[ApiClient] = None
        self._core_v1 = core_v1
        self._version_api = version_api
        self._in_cluster = False

        if self._core_v1 is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize Kubernetes API client."""
        try:
            try:
                config.load_kube_config(
                    config_file=self.settings.kubeconfig_path,
                    context=self.settings.context,
                )
                contexts, active = config.list_kube_config_contexts(
                    config_file=self.settings.kubeconfig_path
                )
                if self.settings.context is not None:
                    active = next(
                        (c for c in contexts if c.get("name") == self.settings.context), None
                    )
                if active:
                    self.default_namespace = (
                        (active.get("context") or {}).get("namespace") or DEFAULT_NAMESPACE
                    )
            except ConfigException:
                if self.settings.kubeconfig_path:
                    raise
                # Running inside the cluster
                config.load_incluster_config()
                self._in_cluster = True

            self._api_client = ApiClient()
            self._core_v1 = CoreV1Api(self._api_client)
            self._version_api = VersionApi(self._api_client)

        except (ConfigException, OSError) as e:
            raise TransportError(f"Failed to initialize cluster connection: {e}") from e

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance."""
        if not self._core_v1:
            raise RuntimeError("Cluster connection not initialized")
        return self._core_v1

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance."""
        if not self._version_api:
            self._version_api = VersionApi(self._api_client)
        return self._version_api

    def namespace_for(self, namespace: Optional[str] = None) -> Optional[str]:
        """
        Resolve the namespace a call targets.

        Args:
            namespace: Explicit namespace, taking precedence over settings

        Returns:
            Namespace name, or None for a cluster-wide call
        """
        ns = namespace or self.settings.namespace
        if ns == ALL_NAMESPACES:
            return None
        return ns or self.default_namespace

    def _call(self, description: str, fn: Callable, *args, **kwargs):
        """Invoke an API method, translating failures to TransportError."""
        logger.debug(f"exec {description}")
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            raise TransportError(
                f"{description} failed: {e.status} {e.reason}".strip(), status=e.status
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise TransportError(f"{description} failed: {e}") from e

    @read_retry
    def list_pods(
        self, selector: Optional[Selector] = None, namespace: Optional[str] = None
    ) -> list[Pod]:
        """
        List pods in scope.

        Args:
            selector: Label selector; empty or None matches every pod
            namespace: Namespace override

        Returns:
            Pods in API server order
        """
        ns = self.namespace_for(namespace)
        label_selector = format_selector(selector)
        if ns is None:
            response = self._call(
                f"list pods --all-namespaces selector={label_selector}",
                self.core_v1.list_pod_for_all_namespaces,
                label_selector=label_selector,
                _preload_content=False,
            )
        else:
            response = self._call(
                f"list pods --namespace={ns} selector={label_selector}",
                self.core_v1.list_namespaced_pod,
                ns,
                label_selector=label_selector,
                _preload_content=False,
            )
        return decode(PodList, response.data).items

    @read_retry
    def list_controllers(self, namespace: Optional[str] = None) -> list[ReplicationController]:
        """
        List replication controllers in scope.

        Args:
            namespace: Namespace override

        Returns:
            Replication controllers
        """
        ns = self.namespace_for(namespace)
        if ns is None:
            response = self._call(
                "list rc --all-namespaces",
                self.core_v1.list_replication_controller_for_all_namespaces,
                _preload_content=False,
            )
        else:
            response = self._call(
                f"list rc --namespace={ns}",
                self.core_v1.list_namespaced_replication_controller,
                ns,
                _preload_content=False,
            )
        return decode(ReplicationControllerList, response.data).items

    @read_retry
    def get_controller(
        self, name: str, namespace: Optional[str] = None
    ) -> ReplicationController:
        """
        Get a single replication controller.

        Args:
            name: Replication controller name
            namespace: Namespace override

        Returns:
            ReplicationController

        Raises:
            ControllerNotFoundError: If no such controller exists
            TransportError: If the API call fails
            DecodeError: If the response cannot be decoded
        """
        ns = self.namespace_for(namespace)
        if ns is None:
            response = self._call(
                f"get rc {name} --all-namespaces",
                self.core_v1.list_replication_controller_for_all_namespaces,
                field_selector=f"metadata.name={name}",
                _preload_content=False,
            )
            items = decode(ReplicationControllerList, response.data).items
            if not items:
                raise ControllerNotFoundError(name)
            if len(items) > 1:
                logger.warning(
                    f"RC {name} exists in {len(items)} namespaces, "
                    f"using {items[0].namespace}"
                )
            return items[0]

        try:
            response = self._call(
                f"get rc {name} --namespace={ns}",
                self.core_v1.read_namespaced_replication_controller,
                name,
                ns,
                _preload_content=False,
            )
        except TransportError as e:
            if e.status == 404:
                raise ControllerNotFoundError(name, ns) from e
            raise
        return decode(ReplicationController, response.data)

    def patch_controller(self, name: str, patch: str, namespace: Optional[str] = None) -> None:
        """
        Apply a JSON merge-patch to a replication controller.

        Args:
            name: Replication controller name
            patch: Merge-patch document as JSON text
            namespace: Namespace override
        """
        ns = self.namespace_for(namespace) or self.default_namespace
        self._call(
            f"patch rc {name} --namespace={ns} -p {patch}",
            self.core_v1.patch_namespaced_replication_controller,
            name,
            ns,
            json.loads(patch),
            _content_type=MERGE_PATCH,
        )

    def delete_pod(self, name: str, namespace: Optional[str] = None) -> None:
        """
        Delete a pod.

        Args:
            name: Pod name
            namespace: Namespace override
        """
        ns = self.namespace_for(namespace) or self.default_namespace
        self._call(
            f"delete pod {name} --namespace={ns}",
            self.core_v1.delete_namespaced_pod,
            name,
            ns,
        )

    def current_context(self) -> str:
        """Return the active kubeconfig context name."""
        if self.settings.context:
            return self.settings.context
        if self._in_cluster:
            return "in-cluster"
        try:
            _, active = config.list_kube_config_contexts(
                config_file=self.settings.kubeconfig_path
            )
        except ConfigException as e:
            raise TransportError(f"Failed to read current context: {e}") from e
        return active["name"] if active else ""

    def versions(self) -> tuple[str, str]:
        """
        Get client and server versions.

        Returns:
            Tuple of (client version, server git version)
        """
        info = self._call("version", self.version_api.get_code)
        return kubernetes.__version__, info.git_version

    def close(self):
        """Close the underlying API client."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
