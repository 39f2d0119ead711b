"""Value encoding for cache envelopes.

Two modes, selected per cache instance:
- Pass-through: values are stored as-is, except None which is stored as the
  sentinel "cacher/nil" so a stored None can be told apart from a missing key.
  A cached value equal to the sentinel string reads back as None.
- Serialized: values are packed into a JSON tree and written with orjson.
  Types JSON can't represent exactly are tagged:

    {"__cacher_type__": "tuple", "state": [1, 2]}
    {"__cacher_type__": "myapp.models:User", "state": {"name": "ada"}}

Custom types are looked up in a TypeRegistry by tag name. When a tag is not
registered (e.g. its module hasn't been imported yet in a long-running
process), the registry's resolvers get one chance per name to supply it before
decoding fails with DeserializationError.

The default registry resolves names through ``import_resolver``, which imports
the module named in a payload and rebuilds instances without calling
``__init__``. Only read payloads from a backend you trust, or build the
registry with ``TypeRegistry(resolvers=[])`` and register every type
explicitly.

Example:
    from cacher.serialization import type_registry

    @type_registry.register(name="user")
    @dataclass
    class User:
        name: str
"""

from __future__ import annotations

import base64
import importlib
import logging
import math
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

import orjson
from pydantic import BaseModel

from cacher.errors import DeserializationError, SerializationError

logger = logging.getLogger(__name__)

NIL_SENTINEL = "cacher/nil"
_NIL_SENTINEL_BYTES = NIL_SENTINEL.encode("utf-8")

TYPE_TAG = "__cacher_type__"
STATE = "state"

# orjson only handles 64-bit integers
_INT_MIN = -(2**63)
_INT_MAX = 2**64 - 1

_T = TypeVar("_T")

Resolver = Callable[[str], "type | None"]


class UnknownTypeError(LookupError):
    """A payload references a type name missing from the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"undefined type {name!r}")
        self.name = name


@dataclass(frozen=True)
class TypeEntry:
    """A registered type and the functions converting it to/from state."""

    name: str
    cls: type
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]


def type_path(cls: type) -> str:
    """Import path of a class, e.g. ``myapp.models:User``."""
    return f"{cls.__module__}:{cls.__qualname__}"


def import_resolver(name: str) -> type | None:
    """Resolve a ``module:QualName`` tag by importing its module.

    Attribute lookup goes through module ``__getattr__`` hooks, so modules
    can define types lazily.
    """
    module_name, sep, qualname = name.partition(":")
    if not sep or not module_name or not qualname:
        return None

    try:
        target: Any = importlib.import_module(module_name)
    except (ImportError, TypeError, ValueError):
        # Missing module or a relative name
        return None

    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            return None

    return target if isinstance(target, type) else None


# Subclasses of these keep their class and any instance attributes
_MUTABLE_BASES: tuple[tuple[type, str], ...] = (
    (dict, "update"),
    (list, "extend"),
    (set, "update"),
    (bytearray, "extend"),
)
_IMMUTABLE_BASES: tuple[type, ...] = (str, bytes, int, float, tuple, frozenset)

_VALUE_TYPES = (datetime, date, time, Decimal, UUID)


def _instance_attrs(obj: Any) -> dict[str, Any]:
    return dict(getattr(obj, "__dict__", {}))


def _restore_attrs(obj: Any, attrs: dict[str, Any] | None) -> Any:
    if attrs:
        obj.__dict__.update(attrs)
    return obj


def _mutable_codec(
    cls: type, base: type, fill: str
) -> tuple[Callable[[Any], Any], Callable[[Any], Any]]:
    is_defaultdict = issubclass(cls, defaultdict)

    def encode(obj: Any) -> dict[str, Any]:
        if base is dict:
            items: Any = [[key, value] for key, value in obj.items()]
        elif base is bytearray:
            items = bytes(obj)
        else:
            items = base(obj)
        state: dict[str, Any] = {"items": items, "attrs": _instance_attrs(obj)}
        if is_defaultdict:
            state["factory"] = _factory_path(obj.default_factory)
        return state

    def decode(state: dict[str, Any]) -> Any:
        obj = cls.__new__(cls)
        if is_defaultdict and state.get("factory") is not None:
            obj.default_factory = _load_factory(state["factory"])
        getattr(obj, fill)(state["items"])
        return _restore_attrs(obj, state.get("attrs"))

    return encode, decode


def _immutable_codec(cls: type, base: type) -> tuple[Callable[[Any], Any], Callable[[Any], Any]]:
    def encode(obj: Any) -> dict[str, Any]:
        return {"value": base(obj), "attrs": _instance_attrs(obj)}

    def decode(state: dict[str, Any]) -> Any:
        return _restore_attrs(cls.__new__(cls, state["value"]), state.get("attrs"))

    return encode, decode


def _factory_path(factory: Any) -> str | None:
    if factory is None:
        return None
    if isinstance(factory, type) and import_resolver(type_path(factory)) is factory:
        return type_path(factory)
    raise SerializationError(f"cannot serialize defaultdict factory {factory!r}")


def _load_factory(path: str) -> type:
    factory = import_resolver(path)
    if factory is None:
        raise DeserializationError(f"unknown defaultdict factory {path!r}", type_name=path)
    return factory


def _default_codec(cls: type) -> tuple[Callable[[Any], Any], Callable[[Any], Any]]:
    if issubclass(cls, BaseModel):
        return (lambda model: model.model_dump(mode="python"), cls.model_validate)

    if issubclass(cls, Enum):
        return (lambda member: member.value, cls)

    if issubclass(cls, tuple) and hasattr(cls, "_fields"):
        # namedtuple
        return (lambda obj: dict(obj._asdict()), lambda state: cls(**state))

    for base, fill in _MUTABLE_BASES:
        if issubclass(cls, base):
            return _mutable_codec(cls, base, fill)

    for base in _IMMUTABLE_BASES:
        if issubclass(cls, base):
            return _immutable_codec(cls, base)

    if issubclass(cls, _VALUE_TYPES):

        def reject(obj: Any) -> Any:
            raise SerializationError(
                f"cannot serialize {type_path(cls)} without a custom encoder"
            )

        return reject, cls

    def encode(obj: Any) -> dict[str, Any]:
        try:
            return dict(vars(obj))
        except TypeError:
            raise SerializationError(
                f"cannot serialize {type_path(cls)} without a custom encoder"
            ) from None

    def decode(state: dict[str, Any]) -> Any:
        # Restore attributes without running __init__
        obj = cls.__new__(cls)
        obj.__dict__.update(state)
        return obj

    return encode, decode


class TypeRegistry:
    """Registry of custom types the serializer may encode and decode.

    Thread-safe: registration may happen from any thread, including during
    resolution triggered by a decode.
    """

    def __init__(self, resolvers: list[Resolver] | None = None) -> None:
        self._by_name: dict[str, TypeEntry] = {}
        self._by_type: dict[type, TypeEntry] = {}
        self._resolvers: list[Resolver] = (
            list(resolvers) if resolvers is not None else [import_resolver]
        )
        self._lock = threading.RLock()

    def register(
        self,
        cls: type | None = None,
        *,
        name: str | None = None,
        encode: Callable[[Any], Any] | None = None,
        decode: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Register a type, directly or as a class decorator.

        Args:
            cls: Type to register
            name: Tag name written to payloads (defaults to the import path)
            encode: Converts an instance to serializable state
            decode: Rebuilds an instance from state

        Returns:
            The registered class (or a decorator when ``cls`` is omitted)
        """
        if cls is None:

            def decorator(target: type[_T]) -> type[_T]:
                self.register(target, name=name, encode=encode, decode=decode)
                return target

            return decorator

        tag = name or type_path(cls)
        if tag in _BUILTIN_DECODERS:
            raise ValueError(f"type name {tag!r} is reserved")

        default_encode, default_decode = _default_codec(cls)
        entry = TypeEntry(
            name=tag,
            cls=cls,
            encode=encode or default_encode,
            decode=decode or default_decode,
        )

        with self._lock:
            previous = self._by_name.get(tag)
            if previous is not None:
                self._by_type.pop(previous.cls, None)
            self._by_name[tag] = entry
            self._by_type[cls] = entry

        logger.debug(f"Registered cache type {tag}")
        return cls

    def unregister(self, name: str) -> None:
        """Remove a type by tag name, if registered."""
        with self._lock:
            entry = self._by_name.pop(name, None)
            if entry is not None and self._by_type.get(entry.cls) is entry:
                del self._by_type[entry.cls]

    def add_resolver(self, resolver: Resolver) -> None:
        """Add a resolver consulted for unknown tag names."""
        with self._lock:
            self._resolvers.append(resolver)

    def entry_for(self, cls: type) -> TypeEntry | None:
        return self._by_type.get(cls)

    def lookup(self, name: str) -> TypeEntry:
        """Get the entry for a tag name.

        Raises:
            UnknownTypeError: If the name is not registered
        """
        entry = self._by_name.get(name)
        if entry is None:
            raise UnknownTypeError(name)
        return entry

    def resolve(self, name: str) -> bool:
        """Ask the resolvers to supply a type for ``name`` and register it.

        Returns:
            True if a resolver supplied a type
        """
        for resolver in list(self._resolvers):
            cls = resolver(name)
            if cls is not None:
                self.register(cls, name=name)
                logger.info(f"Resolved cache type {name} to {type_path(cls)}")
                return True
        return False

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def _decode_dict(items: list[list[Any]], unpack: Callable[[Any], Any]) -> dict[Any, Any]:
    return {unpack(key): unpack(value) for key, value in items}


# Tag name -> (state, unpack) -> value
_BUILTIN_DECODERS: dict[str, Callable[[Any, Callable[[Any], Any]], Any]] = {
    "int": lambda state, unpack: int(state),
    "float": lambda state, unpack: float(state),
    "dict": _decode_dict,
    "tuple": lambda state, unpack: tuple(unpack(item) for item in state),
    "set": lambda state, unpack: {unpack(item) for item in state},
    "frozenset": lambda state, unpack: frozenset(unpack(item) for item in state),
    "bytes": lambda state, unpack: base64.b64decode(state),
    "bytearray": lambda state, unpack: bytearray(base64.b64decode(state)),
    "datetime": lambda state, unpack: datetime.fromisoformat(state),
    "date": lambda state, unpack: date.fromisoformat(state),
    "time": lambda state, unpack: time.fromisoformat(state),
    "decimal": lambda state, unpack: Decimal(state),
    "uuid": lambda state, unpack: UUID(state),
}


def _tagged(tag: str, state: Any) -> dict[str, Any]:
    return {TYPE_TAG: tag, STATE: state}


class Serializer:
    """Structured codec turning values into orjson bytes and back.

    Args:
        registry: Registry of custom types
        auto_register: Register unknown object types under their import path
            when first encoded
    """

    def __init__(self, registry: TypeRegistry | None = None, *, auto_register: bool = True):
        self.registry = registry if registry is not None else TypeRegistry()
        self.auto_register = auto_register

    def dumps(self, value: Any) -> bytes:
        """Encode a value to bytes."""
        try:
            return orjson.dumps(self._pack(value))
        except orjson.JSONEncodeError as exc:
            raise SerializationError(f"cannot serialize value: {exc}") from exc

    def loads(self, data: bytes | str) -> Any:
        """Decode bytes produced by ``dumps``.

        Each distinct unknown type name gets one resolution attempt followed by
        a retry.

        Raises:
            DeserializationError: If the payload is malformed or references a
                type that cannot be resolved
        """
        try:
            tree = orjson.loads(data)
        except orjson.JSONDecodeError as exc:
            raise DeserializationError(f"malformed cache payload: {exc}") from exc

        attempted: set[str] = set()
        while True:
            try:
                return self._unpack(tree)
            except UnknownTypeError as exc:
                if exc.name in attempted or not self._resolve(exc.name):
                    raise DeserializationError(str(exc), type_name=exc.name) from exc
                attempted.add(exc.name)
                logger.debug(f"Retrying decode after resolving {exc.name}")
            except DeserializationError:
                raise
            except Exception as exc:
                raise DeserializationError(f"failed to decode cache payload: {exc}") from exc

    def _resolve(self, name: str) -> bool:
        try:
            return self.registry.resolve(name)
        except Exception as exc:
            raise DeserializationError(
                f"resolving type {name!r} failed: {exc}", type_name=name
            ) from exc

    # -------------------------------------------------------------------------
    # Packing
    # -------------------------------------------------------------------------

    def _pack(self, value: Any) -> Any:
        if value is None or value is True or value is False:
            return value

        entry = self.registry.entry_for(type(value))
        if entry is not None:
            return _tagged(entry.name, self._pack(entry.encode(value)))

        # Exact types only: subclasses (namedtuples, OrderedDict, str enums)
        # go through the registry so they keep their class
        kind = type(value)
        if kind is str:
            return value
        if kind is int:
            if _INT_MIN <= value <= _INT_MAX:
                return value
            return _tagged("int", str(value))
        if kind is float:
            if math.isfinite(value):
                return value
            return _tagged("float", repr(value))
        if kind is list:
            return [self._pack(item) for item in value]
        if kind is dict:
            if TYPE_TAG not in value and all(type(key) is str for key in value):
                return {key: self._pack(item) for key, item in value.items()}
            return _tagged(
                "dict", [[self._pack(key), self._pack(item)] for key, item in value.items()]
            )
        if kind is tuple:
            return _tagged("tuple", [self._pack(item) for item in value])
        if kind is frozenset:
            return _tagged("frozenset", [self._pack(item) for item in value])
        if kind is set:
            return _tagged("set", [self._pack(item) for item in value])
        if kind is bytearray:
            return _tagged("bytearray", base64.b64encode(value).decode("ascii"))
        if kind is bytes:
            return _tagged("bytes", base64.b64encode(value).decode("ascii"))
        if kind is datetime:
            return _tagged("datetime", value.isoformat())
        if kind is date:
            return _tagged("date", value.isoformat())
        if kind is time:
            return _tagged("time", value.isoformat())
        if kind is Decimal:
            return _tagged("decimal", str(value))
        if kind is UUID:
            return _tagged("uuid", str(value))

        return self._pack_object(value)

    def _pack_object(self, value: Any) -> dict[str, Any]:
        cls = type(value)
        entry = self.registry.entry_for(cls)
        if entry is None:
            if not self.auto_register:
                raise SerializationError(f"type {type_path(cls)} is not registered")
            self.registry.register(cls)
            entry = self.registry.lookup(type_path(cls))
        return _tagged(entry.name, self._pack(entry.encode(value)))

    # -------------------------------------------------------------------------
    # Unpacking
    # -------------------------------------------------------------------------

    def _unpack(self, node: Any) -> Any:
        if isinstance(node, list):
            return [self._unpack(item) for item in node]
        if isinstance(node, dict):
            tag = node.get(TYPE_TAG)
            if tag is None:
                return {key: self._unpack(item) for key, item in node.items()}
            return self._unpack_tagged(tag, node.get(STATE))
        return node

    def _unpack_tagged(self, tag: Any, state: Any) -> Any:
        if not isinstance(tag, str):
            raise DeserializationError(f"invalid type tag {tag!r}")

        builtin = _BUILTIN_DECODERS.get(tag)
        if builtin is not None:
            return builtin(state, self._unpack)

        entry = self.registry.lookup(tag)
        return entry.decode(self._unpack(state))


# Global registry and serializer
type_registry = TypeRegistry()
default_serializer = Serializer(type_registry)


def register_type(
    cls: type | None = None,
    *,
    name: str | None = None,
    encode: Callable[[Any], Any] | None = None,
    decode: Callable[[Any], Any] | None = None,
) -> Any:
    """Register a type with the global registry."""
    return type_registry.register(cls, name=name, encode=encode, decode=decode)


def is_nil_sentinel(envelope: Any) -> bool:
    if isinstance(envelope, str):
        return envelope == NIL_SENTINEL
    if isinstance(envelope, bytes):
        return envelope == _NIL_SENTINEL_BYTES
    return False


def encode_value(value: Any, *, serialize: bool, serializer: Serializer | None = None) -> Any:
    """Convert a value to the envelope stored in the backend."""
    if serialize:
        return (serializer or default_serializer).dumps(value)
    if value is None:
        return NIL_SENTINEL
    return value


def decode_value(envelope: Any, *, serialize: bool, serializer: Serializer | None = None) -> Any:
    """Convert a stored envelope back to its value."""
    if serialize:
        return (serializer or default_serializer).loads(envelope)
    if is_nil_sentinel(envelope):
        return None
    return envelope
