"""Create or update the resources described by a set of YAML manifest files."""

from __future__ import annotations

import abc
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

import yaml

from .apierrors import AlreadyExistsError, aggregate
from .meta import GroupVersionResource

logger = logging.getLogger(__name__)

ANNOTATION_CREATE_ONLY_KEY = "bootstrap.kube-bind.io/create-only"
ANNOTATION_BATTERY = "bootstrap.kube-bind.io/battery"

TransformFile = Callable[[bytes], bytes]
FileSystem = Union[Mapping[str, Union[bytes, str]], Path, str]


@dataclass(frozen=True)
class Option:
    """Customises bootstrapping with a transformation applied to every document."""

    transform_file: TransformFile


def replace_option(*args: str) -> Option:
    """Replace each given old string by the new string following it."""
    pairs = tuple(args)

    def transform(data: bytes) -> bytes:
        if len(pairs) % 2:
            raise ValueError(f"odd number of arguments: {list(pairs)}")
        for old, new in zip(pairs[::2], pairs[1::2]):
            data = data.replace(old.encode(), new.encode())
        return data

    return Option(transform)


class ResourceClient(abc.ABC):
    """Access to objects of any resource in a cluster."""

    @abc.abstractmethod
    def create(self, resource: GroupVersionResource, namespace: str, obj: dict) -> dict:
        """Create obj; raise AlreadyExistsError when it exists."""

    @abc.abstractmethod
    def get(self, resource: GroupVersionResource, namespace: str, name: str) -> dict:
        """Return the named object."""

    @abc.abstractmethod
    def update(self, resource: GroupVersionResource, namespace: str, obj: dict) -> dict:
        """Replace the object with obj."""


class RESTMapper(abc.ABC):
    """Maps kinds to resources."""

    @abc.abstractmethod
    def resource_for(self, group: str, version: str, kind: str) -> str:
        """Return the resource name serving the kind."""

    def invalidate(self) -> None:
        """Drop cached discovery information held on the mapper."""
        vars(self).pop("_discovery_cache", None)


# ---- templates ---------------------------------------------------------------

_ACTION = re.compile(r"\{\{(-\s)?(.*?)(\s-)?\}\}", re.DOTALL)
_EXPR_WORD = re.compile(r'"(?:[^"\\]|\\.)*"|\(|\)|[^\s()]+')


def _split_actions(raw: str) -> list[tuple[str, str]]:
    parts: list[tuple[str, str]] = []
    pos = 0
    trim_next = False
    for match in _ACTION.finditer(raw):
        text = raw[pos:match.start()]
        if trim_next:
            text = text.lstrip()
        if match.group(1):
            text = text.rstrip()
        if text:
            parts.append(("text", text))
        parts.append(("action", match.group(2).strip()))
        trim_next = bool(match.group(3))
        pos = match.end()
    text = raw[pos:]
    if trim_next:
        text = text.lstrip()
    if text:
        parts.append(("text", text))
    return parts


def _truthy(value: Any) -> bool:
    return bool(value)


def _field(root: Any, path: str) -> Any:
    value = root
    for name in [p for p in path.split(".") if p]:
        if isinstance(value, Mapping):
            value = value.get(name, False if value is not root else None)
            if value is None:
                raise ValueError(f"can't evaluate field {name}")
        else:
            raise ValueError(f"can't evaluate field {name} in {type(value).__name__}")
    return value


def _evaluate(words: list[str], root: Any) -> Any:
    def term(it: Iterator[str], word: str) -> Any:
        if word == "(":
            inner = []
            depth = 1
            for w in it:
                if w == "(":
                    depth += 1
                elif w == ")":
                    depth -= 1
                    if depth == 0:
                        break
                inner.append(w)
            else:
                raise ValueError("unclosed parenthesis")
            return _evaluate(inner, root)
        if word.startswith('"'):
            return word[1:-1].encode().decode("unicode_escape")
        if word in ("true", "false"):
            return word == "true"
        if word.startswith("."):
            return _field(root, word)
        raise ValueError(f"function {word!r} not defined")

    if not words:
        raise ValueError("missing value for command")
    head, rest = words[0], words[1:]
    funcs = {"not", "and", "or", "index"}
    if head in funcs:
        it = iter(rest)
        args = [term(it, w) for w in it]
        if head == "not":
            if len(args) != 1:
                raise ValueError("wrong number of args for not")
            return not _truthy(args[0])
        if head == "and":
            result: Any = True
            for a in args:
                result = a
                if not _truthy(a):
                    break
            return result
        if head == "or":
            result = False
            for a in args:
                result = a
                if _truthy(a):
                    break
            return result
        if not args:
            raise ValueError("wrong number of args for index")
        value = args[0]
        for key in args[1:]:
            if not isinstance(value, Mapping):
                raise ValueError("can't index item")
            value = value.get(key, False)
        return value
    it = iter(words)
    values = [term(it, w) for w in it]
    if len(values) != 1:
        raise ValueError(f"can't give argument to non-function {head}")
    return values[0]


def _render(parts: list[tuple[str, str]], root: Any) -> str:
    out: list[str] = []
    # Each frame: (emitting, branch_taken)
    stack: list[tuple[bool, bool]] = []
    emitting = True
    for kind, body in parts:
        if kind == "text":
            if emitting:
                out.append(body)
            continue
        if body.startswith("/*"):
            continue
        words = _EXPR_WORD.findall(body)
        if not words:
            raise ValueError("missing value for command")
        if words[0] == "if":
            cond = emitting and _truthy(_evaluate(words[1:], root))
            stack.append((emitting, cond))
            emitting = cond
        elif words[0] == "else":
            if not stack:
                raise ValueError("unexpected {{else}}")
            outer, taken = stack[-1]
            if len(words) > 2 and words[1] == "if":
                cond = outer and not taken and _truthy(_evaluate(words[2:], root))
                stack[-1] = (outer, taken or cond)
                emitting = cond
            else:
                emitting = outer and not taken
                stack[-1] = (outer, True)
        elif words[0] == "end":
            if not stack:
                raise ValueError("unexpected {{end}}")
            emitting, _ = stack.pop()
        elif emitting:
            value = _evaluate(words, root)
            out.append("false" if value is False else "true" if value is True else str(value))
    if stack:
        raise ValueError("unexpected EOF")
    return "".join(out)


def render_manifest(raw: Union[str, bytes], batteries_included: Iterable[str]) -> str:
    """Execute a manifest template with the included batteries as .Batteries."""
    text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
    root = {"Batteries": {b: True for b in sorted(set(batteries_included))}}
    try:
        parts = _split_actions(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse manifest: {exc}") from exc
    try:
        return _render(parts, root)
    except ValueError as exc:
        raise ValueError(f"failed to execute manifest: {exc}") from exc


# ---- resources ---------------------------------------------------------------


def qualified_object_name(obj: Mapping[str, Any]) -> str:
    """Return namespace/name, or only name for cluster-scoped objects."""
    meta = obj.get("metadata") or {}
    namespace = meta.get("namespace") or ""
    name = meta.get("name") or ""
    return f"{namespace}/{name}" if namespace else name


def _list_files(fs: FileSystem) -> list[str]:
    if isinstance(fs, Mapping):
        return sorted(fs)
    return sorted(p.name for p in Path(fs).iterdir() if p.is_file())


def _read_file(fs: FileSystem, filename: str) -> bytes:
    if isinstance(fs, Mapping):
        if filename not in fs:
            raise FileNotFoundError(filename)
        data = fs[filename]
        return data.encode() if isinstance(data, str) else bytes(data)
    return (Path(fs) / filename).read_bytes()


def _documents(raw: bytes) -> Iterator[bytes]:
    current: list[bytes] = []
    for line in raw.splitlines(keepends=True):
        if line.rstrip(b"\r\n").rstrip() == b"---":
            yield b"".join(current)
            current = []
        else:
            current.append(line)
    yield b"".join(current)


def _create_resource(
    client: ResourceClient, mapper: RESTMapper, raw: bytes, batteries_included: set[str]
) -> None:
    rendered = render_manifest(raw, batteries_included)
    try:
        obj = yaml.safe_load(rendered)
    except yaml.YAMLError as exc:
        raise ValueError(f"could not decode raw: {exc}") from exc
    if not isinstance(obj, dict) or not obj.get("kind") or not obj.get("apiVersion"):
        raise ValueError("could not decode raw: object must have apiVersion and kind")

    api_version: str = obj["apiVersion"]
    kind: str = obj["kind"]
    group, _, version = api_version.rpartition("/")
    meta = obj.setdefault("metadata", {}) or {}
    obj["metadata"] = meta

    battery = (meta.get("annotations") or {}).get(ANNOTATION_BATTERY)
    if battery is not None:
        wanted = [p.strip() for p in battery.split(",")]
        if not any(p in batteries_included for p in wanted):
            logger.debug(
                "Skipping %s because %s is/are not among included batteries %s",
                meta.get("name", ""), battery, sorted(batteries_included),
            )
            return

    try:
        plural = mapper.resource_for(group, version, kind)
    except Exception as exc:
        raise LookupError(f"could not get REST mapping for {api_version}, Kind={kind}: {exc}") from exc
    gvr = GroupVersionResource(group, version, plural)
    namespace = meta.get("namespace") or ""

    try:
        created = client.create(gvr, namespace, obj)
    except AlreadyExistsError:
        existing = client.get(gvr, namespace, meta.get("name") or "")
        existing_meta = existing.get("metadata") or {}
        if ANNOTATION_CREATE_ONLY_KEY in (existing_meta.get("annotations") or {}):
            logger.debug("Skipping update of %s %s because it has the create-only annotation",
                         kind, qualified_object_name(existing))
            return
        meta["resourceVersion"] = existing_meta.get("resourceVersion", "")
        try:
            client.update(gvr, namespace, obj)
        except Exception as exc:
            raise RuntimeError(
                f"could not update {kind} {qualified_object_name(existing)}: {exc}"
            ) from exc
        logger.info("Updated %s %s", kind, qualified_object_name(existing))
        return
    logger.info("Bootstrapped %s %s", kind, qualified_object_name(created or obj))


def create_resource_from_fs(
    client: ResourceClient,
    mapper: RESTMapper,
    batteries_included: Iterable[str],
    filename: str,
    fs: FileSystem,
    *args: TransformFile,
) -> None:
    """Create or update every document of one manifest file."""
    try:
        raw = _read_file(fs, filename)
    except OSError as exc:
        raise OSError(f"could not read {filename}: {exc}") from exc
    if not raw:
        return
    batteries = set(batteries_included)
    errors: list[BaseException] = []
    for number, doc in enumerate(_documents(raw), start=1):
        if not doc.strip():
            continue
        for transform in args:
            doc = transform(doc)
        try:
            _create_resource(client, mapper, doc, batteries)
        except Exception as exc:
            wrapped = RuntimeError(f"failed to create resource {filename} doc {number}: {exc}")
            wrapped.__cause__ = exc
            errors.append(wrapped)
    err = aggregate(errors)
    if err is not None:
        raise err


def create_resources_from_fs(
    client: ResourceClient,
    mapper: RESTMapper,
    batteries_included: Iterable[str],
    fs: FileSystem,
    *args: TransformFile,
) -> None:
    """Create or update the resources of every file in fs."""
    batteries = set(batteries_included)
    errors: list[BaseException] = []
    for name in _list_files(fs):
        try:
            create_resource_from_fs(client, mapper, batteries, name, fs, *args)
        except Exception as exc:
            errors.append(exc)
    err = aggregate(errors)
    if err is not None:
        raise err


def bootstrap(
    client: ResourceClient,
    mapper: RESTMapper,
    batteries_included: Iterable[str],
    fs: FileSystem,
    *args: Option,
    interval: float = 1.0,
    stop: Optional[threading.Event] = None,
) -> None:
    """Retry creating all resources until it succeeds or stop is set."""
    transformers = [opt.transform_file for opt in args]
    batteries = set(batteries_included)
    while True:
        if stop is not None and stop.is_set():
            raise TimeoutError("timed out waiting for the condition")
        try:
            create_resources_from_fs(client, mapper, batteries, fs, *transformers)
            return
        except Exception as exc:
            logger.info("Failed to bootstrap resources, retrying: %s", exc)
            mapper.invalidate()
        if stop is not None:
            if stop.wait(interval):
                raise TimeoutError("timed out waiting for the condition")
        else:
            threading.Event().wait(interval)