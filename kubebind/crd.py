"""Create CustomResourceDefinitions from manifest files and wait until established."""

from __future__ import annotations

import abc
import copy
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

import yaml

from .apierrors import AlreadyExistsError, NotFoundError, aggregate, is_retryable
from .bootstrap import FileSystem, _read_file

logger = logging.getLogger(__name__)

CRD_API_VERSION = "apiextensions.k8s.io/v1"
CRD_KIND = "CustomResourceDefinition"

T = TypeVar("T")


class CRDClient(abc.ABC):
    """Access to CustomResourceDefinitions of a cluster."""

    @abc.abstractmethod
    def get(self, name: str) -> dict:
        """Return the named CRD; raise NotFoundError if missing."""

    @abc.abstractmethod
    def create(self, crd: dict) -> dict:
        """Create the CRD; raise AlreadyExistsError if it exists."""

    @abc.abstractmethod
    def update(self, crd: dict) -> dict:
        """Replace the CRD."""


def _gr_string(group_resource: Any) -> str:
    group = getattr(group_resource, "group", "")
    resource = getattr(group_resource, "resource", "")
    return f"{resource}.{group}" if group else resource


def crd(fs: FileSystem, group_resource: Any) -> dict:
    """Load the CRD stored in fs as <group>_<resource>.yaml."""
    name = _gr_string(group_resource)
    filename = f"{group_resource.group}_{group_resource.resource}.yaml"
    try:
        raw = _read_file(fs, filename)
    except OSError as exc:
        raise OSError(f"could not read CRD {name}: {exc}") from exc
    try:
        obj = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"could not decode raw CRD {name}: {exc}") from exc
    if not isinstance(obj, dict):
        raise ValueError(f"could not decode raw CRD {name}: not an object")
    got = (obj.get("apiVersion"), obj.get("kind"))
    if got != (CRD_API_VERSION, CRD_KIND):
        raise ValueError(
            f"decoded CRD {name} into incorrect GroupVersionKind, got {got}, "
            f"wanted {(CRD_API_VERSION, CRD_KIND)}"
        )
    return obj


def _is_established(obj: dict) -> bool:
    for cond in (obj.get("status") or {}).get("conditions") or []:
        if cond.get("type") == "Established":
            return cond.get("status") == "True"
    return False


def create_single(
    client: CRDClient,
    raw_crd: dict,
    interval: float = 0.1,
    stop: Optional[threading.Event] = None,
) -> None:
    """Create or update a CRD and block until it is established."""
    start = time.monotonic()
    raw_crd = copy.deepcopy(raw_crd)
    name = (raw_crd.get("metadata") or {}).get("name", "")
    update_needed = False
    try:
        current = client.get(name)
        update_needed = True
    except NotFoundError:
        try:
            current = client.create(raw_crd)
            logger.info("Bootstrapped CRD %s after %.3fs", name, time.monotonic() - start)
        except AlreadyExistsError:
            try:
                current = client.get(name)
            except Exception as exc:
                raise RuntimeError(f"error getting CRD {name}: {exc}") from exc
            update_needed = True
        except Exception as exc:
            raise RuntimeError(f"error creating CRD {name}: {exc}") from exc
    except Exception as exc:
        raise RuntimeError(f"error fetching CRD {name}: {exc}") from exc

    if update_needed:
        meta = raw_crd.setdefault("metadata", {})
        meta["resourceVersion"] = (current.get("metadata") or {}).get("resourceVersion", "")
        client.update(raw_crd)
        logger.info("Updated CRD %s after %.3fs", name, time.monotonic() - start)

    waiter = stop if stop is not None else threading.Event()
    while True:
        if stop is not None and stop.is_set():
            raise TimeoutError("timed out waiting for the condition")
        try:
            obj = client.get(name)
        except NotFoundError as exc:
            raise RuntimeError(f"CRD {name} was deleted before being established") from exc
        except Exception as exc:
            raise RuntimeError(f"error fetching CRD {name}: {exc}") from exc
        if _is_established(obj):
            return
        if waiter.wait(interval) and stop is not None:
            raise TimeoutError("timed out waiting for the condition")


def retry_retryable_errors(func: Callable[[], T]) -> T:
    """Call func, retrying refused connections, throttling and conflicts with backoff."""
    delay, factor, steps = 0.01, 5.0, 4
    for attempt in range(steps):
        try:
            return func()
        except Exception as exc:
            if not is_retryable(exc) or attempt == steps - 1:
                raise
            time.sleep(delay)
            delay *= factor
    raise AssertionError("unreachable")


def create_from_fs(
    client: CRDClient,
    fs: FileSystem,
    *args: Any,
    stop: Optional[threading.Event] = None,
) -> None:
    """Create the CRDs for the given group resources in parallel and wait for them."""
    def one(gr: Any) -> Optional[BaseException]:
        err: Optional[BaseException] = None
        try:
            retry_retryable_errors(lambda: create_single(client, crd(fs, gr), stop=stop))
        except Exception as exc:
            err = exc
        if stop is not None and stop.is_set():
            err = RuntimeError("context canceled")
        return err

    if not args:
        return
    with ThreadPoolExecutor(max_workers=len(args)) as pool:
        errors = list(pool.map(one, args))
    err = aggregate(errors)
    if err is not None:
        raise RuntimeError(f"could not bootstrap CRDs: {err}") from err