"""Policy interface for authorization decisions.

This module defines the contract that all policies must follow. A policy
decides whether an actor may perform an action on a resource and reports the
decision as an outcome value rather than raising an exception.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Union

from authz.errors import InvalidPolicy


@dataclass(frozen=True)
class Allowed:
    """Outcome of a decision which grants the requested action.

    Carries no payload, so every instance compares equal to ``ALLOWED``.
    """


@dataclass(frozen=True)
class Denied:
    """Outcome of a decision which refuses the requested action.

    Attributes:
        reason: Label chosen by the policy to explain the refusal (e.g. "not_owner",
                "unauthenticated"). Callers can branch on it to pick a log message or
                an error response, or ignore it and only gate on the boolean form.
    """

    reason: Union[str, Enum]


Outcome = Union[Allowed, Denied]

ALLOWED = Allowed()


def allow() -> Allowed:
    return ALLOWED


def deny(reason: Union[str, Enum]) -> Denied:
    return Denied(reason)


class Authorizer(ABC):
    """Abstract base class for policies.

    A policy usually covers one kind of domain object. Actions and reasons are
    labels chosen by the application, typically members of an ``Enum``.

    Policies must not keep state between calls and must not raise to signal a
    denial: a refusal is returned as ``Denied(reason)``. Exceptions are reserved
    for conditions the policy cannot make sense of, and are left to propagate.

    Example implementation:

        class PostPolicy(Authorizer):
            def authorize(self, action, actor, resource):
                if action == PostAction.EDIT and actor.id == resource.author_id:
                    return ALLOWED

                return Denied("unauthorized")

        PostPolicy().authorized(PostAction.EDIT, user, post)  # True or False

    Subclassing is optional. Any object with a callable ``authorize`` attribute,
    including a plain module defining an ``authorize`` function, can be used
    wherever a policy is expected (see ``is_authorized``).
    """

    @abstractmethod
    def authorize(self, action: Hashable, actor: Any, resource: Any) -> Outcome:
        """Make an authorization decision.

        Args:
            action: The action being attempted
            actor: The requesting principal, or None if the request is unauthenticated
            resource: The object or resource tag being acted upon

        Returns:
            ``ALLOWED`` if the action is permitted, ``Denied(reason)`` otherwise
        """

    def authorized(self, action: Hashable, actor: Any, resource: Any) -> bool:
        """Return True if ``authorize`` allows the action, False for any denial."""
        return is_authorized(self, action, actor, resource)


def check_policy(policy: Any) -> Any:
    """Ensure ``policy`` exposes a callable ``authorize`` attribute and return it unchanged."""
    if not callable(getattr(policy, "authorize", None)):
        raise InvalidPolicy(f"{policy!r} does not provide a callable 'authorize' attribute")

    return policy


def is_authorized(policy: Any, action: Hashable, actor: Any, resource: Any) -> bool:
    """Project the outcome of ``policy.authorize`` onto a boolean.

    The result is True only when the policy returns an ``Allowed`` outcome. A
    ``Denied`` outcome is False whatever its reason, and so is any other value a
    misbehaving policy might return (``True`` included).
    """
    outcome = check_policy(policy).authorize(action, actor, resource)
    return bool(outcome == ALLOWED)
