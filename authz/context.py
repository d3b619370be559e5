from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

# Slot of ``assigns`` in which an authentication stage places the current actor
CURRENT_ACTOR_KEY = "current_user"


def _to_bytes(body: Union[str, bytes]) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")

    return body


@dataclass(frozen=True)
class RequestContext:
    """Immutable view of a request as it travels through a pipeline, together with the response built so far.

    Stages never mutate a context. Each helper below returns an updated copy, so a stage which wants to let the
    request through unchanged simply returns the context it was given. A stage which wants to stop the pipeline
    returns a halted copy, typically with an error status and body set.

    The ``assigns`` mapping is where stages share data with each other. Authentication stages place the current
    actor under ``CURRENT_ACTOR_KEY``, which is the only slot authorization stages read.
    """

    method: str = "GET"
    path: str = "/"
    status: Optional[int] = None
    body: bytes = b""
    halted: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)
    response_headers: Mapping[str, str] = field(default_factory=dict)
    assigns: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen dataclasses require object.__setattr__ to normalise fields at construction time
        object.__setattr__(self, "body", _to_bytes(self.body))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "response_headers", MappingProxyType(dict(self.response_headers)))
        object.__setattr__(self, "assigns", MappingProxyType(dict(self.assigns)))

    def assign(self, key: str, value: Any) -> "RequestContext":
        return replace(self, assigns={**self.assigns, key: value})

    def put_status(self, status: int) -> "RequestContext":
        return replace(self, status=status)

    def put_header(self, name: str, value: str) -> "RequestContext":
        return replace(self, response_headers={**self.response_headers, name: value})

    def send(self, status: int, body: Union[str, bytes] = b"") -> "RequestContext":
        return replace(self, status=status, body=_to_bytes(body))

    def halt(self, status: Optional[int] = None, body: Optional[Union[str, bytes]] = None) -> "RequestContext":
        """Return a copy which stops the pipeline, optionally setting the response status and body."""
        context = replace(self, halted=True)

        if status is not None:
            context = replace(context, status=status)

        if body is not None:
            context = replace(context, body=_to_bytes(body))

        return context


def current_actor(context: Any) -> Any:
    """Return the actor stored in the context's ``assigns``, or None if there is none.

    Any object with an ``assigns`` mapping is accepted. A missing ``assigns`` attribute and a missing slot are both
    treated as the absence of an actor.
    """
    assigns = getattr(context, "assigns", None)

    if assigns is None:
        return None

    return assigns.get(CURRENT_ACTOR_KEY)
