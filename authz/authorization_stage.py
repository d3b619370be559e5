"""Request pipeline stage for authorization.

An authorization stage guards a group of routes identified by a resource tag. For each request, it looks up the
current actor in the request context and hands the request to one of two callbacks implemented by the application:

- ``handle_authentication_error(context, resource)`` when no actor is present
- ``handle_authorization(context, actor, resource)`` when an actor is present

Whatever the callback returns is the result of the stage. The stage does not inspect it: allowing the request,
halting it with a 401/403 response or anything else is up to the application. A typical ``handle_authorization``
calls ``is_authorized`` on a policy (see ``authz.authorizer``), but nothing here requires it.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, Mapping

from authz import authz_logging, config
from authz.context import current_actor
from authz.errors import MissingOption

logger = authz_logging.init_logging("stage")

RESOURCE_OPTION = "resource"


def validate_options(opts: Mapping[str, Any]) -> Dict[str, Any]:
    """Check that ``opts`` names the resource tag the stage guards and return a copy of it.

    Raises:
        MissingOption: If the ``resource`` option is absent. Any value, None included, is accepted as the tag
    """
    if RESOURCE_OPTION not in opts:
        raise MissingOption(f"Authorization stage requires the '{RESOURCE_OPTION}' option")

    return dict(opts)


def dispatch(handlers: Any, context: Any, resource: Hashable) -> Any:
    """Hand ``context`` to the handler matching the presence of an actor and return its result verbatim.

    ``handlers`` is any object providing ``handle_authentication_error`` and ``handle_authorization``.
    """
    actor = current_actor(context)

    if actor is None:
        logger.debug("No actor present for resource '%s', invoking authentication error handler", resource)
        return handlers.handle_authentication_error(context, resource)

    logger.debug("Actor present for resource '%s', invoking authorization handler", resource)
    return handlers.handle_authorization(context, actor, resource)


class AuthorizationStage(ABC):
    """Abstract base class for authorization stages.

    Subclasses implement the two handlers; the constructor and dispatch logic are shared. Options are validated when
    the stage is created, so a stage with a missing ``resource`` option can never be installed in a pipeline:

        class AdminStage(AuthorizationStage):
            def handle_authentication_error(self, context, resource):
                return context.halt(401, "Unauthorized")

            def handle_authorization(self, context, actor, resource):
                if is_authorized(AdminPolicy(), Action.ACCESS, actor, resource):
                    return context

                return context.halt(403, "Forbidden")

        pipeline.plug(AdminStage, resource=Resource.ADMIN_ROUTES)

    Stages hold no per-request state and can be shared between concurrent requests.
    """

    def __init__(self, **opts: Any) -> None:
        self._opts = self.init(opts)

    @classmethod
    def init(cls, opts: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate the stage options. Subclasses may extend this to check options of their own."""
        return validate_options(opts)

    @classmethod
    def from_config(cls, name: str, component: str = "authz", **opts: Any) -> "AuthorizationStage":
        """Create a stage whose resource tag is read from the ``[stage:<name>]`` section of the configuration.

        Keyword arguments are passed to the constructor alongside the configured resource and take precedence over
        it. Only the configuration files are read; environment variables cannot change the tag.
        """
        section = f"stage:{name}"

        if not config.has_option(component, RESOURCE_OPTION, section=section):
            raise MissingOption(
                f"Option '{RESOURCE_OPTION}' not found in section [{section}] of component '{component}'"
            )

        resource = config.get(component, RESOURCE_OPTION, section=section)

        return cls(**{RESOURCE_OPTION: resource, **opts})

    @abstractmethod
    def handle_authorization(self, context: Any, actor: Any, resource: Hashable) -> Any:
        """Decide whether ``actor`` may access the routes tagged ``resource``.

        Returns:
            The context unchanged to let the request through, or a halted context to refuse it
        """

    @abstractmethod
    def handle_authentication_error(self, context: Any, resource: Hashable) -> Any:
        """Respond to a request which carries no actor.

        Returns:
            Usually a halted context with an "unauthenticated" response, but the context may also be returned as is
        """

    def call(self, context: Any) -> Any:
        return dispatch(self, context, self.resource)

    def __call__(self, context: Any) -> Any:
        return self.call(context)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(resource={self.resource!r})"

    @property
    def opts(self) -> Dict[str, Any]:
        return self._opts.copy()

    @property
    def resource(self) -> Hashable:
        return self._opts[RESOURCE_OPTION]


class _FunctionStage(AuthorizationStage):
    def __init__(
        self,
        handle_authorization: Callable[[Any, Any, Hashable], Any],
        handle_authentication_error: Callable[[Any, Hashable], Any],
        **opts: Any,
    ) -> None:
        self._handle_authorization = handle_authorization
        self._handle_authentication_error = handle_authentication_error
        super().__init__(**opts)

    def handle_authorization(self, context: Any, actor: Any, resource: Hashable) -> Any:
        return self._handle_authorization(context, actor, resource)

    def handle_authentication_error(self, context: Any, resource: Hashable) -> Any:
        return self._handle_authentication_error(context, resource)


def authorization_stage(
    handle_authorization: Callable[[Any, Any, Hashable], Any],
    handle_authentication_error: Callable[[Any, Hashable], Any],
    **opts: Any,
) -> AuthorizationStage:
    """Build an authorization stage from two plain functions instead of a subclass."""
    if not callable(handle_authorization) or not callable(handle_authentication_error):
        raise TypeError("Both authorization stage handlers must be callable")

    return _FunctionStage(handle_authorization, handle_authentication_error, **opts)
