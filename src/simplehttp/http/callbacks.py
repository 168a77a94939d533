"""
=============================================================================
CALLBACK REGISTRY
=============================================================================

Maps (method, path) pairs to the handler that serves them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        DISPATCH FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /json-any?pretty=1                                             │
    │        │                                                             │
    │        ▼  (method, request.path)                                    │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  CALLBACK REGISTRY                                           │   │
    │   │                                                              │   │
    │   │  GET     /             → index                              │   │
    │   │  GET     /json-any     → json_any           ← MATCH!        │   │
    │   │  POST    /             → create                             │   │
    │   │  PUT     (none)                                             │   │
    │   │  DELETE  (none)                                             │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   json_any(request, response)                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

MATCHING RULES:
    - Paths are compared as exact strings
    - No parameters, no wildcards, no trailing-slash normalization
      ("/users" and "/users/" are different callbacks)
    - Each (method, path) pair has at most ONE handler

THREAD SAFETY:
    Handlers are registered before the server starts accepting. Server.start()
    freezes the registry, after which it is only ever read, so connection
    threads can look handlers up concurrently without a lock.

=============================================================================
"""

from typing import Callable, Dict, Iterator, Tuple
import logging

from .methods import HTTPMethod
from .request import Request
from .response import Response


logger = logging.getLogger(__name__)


# A handler mutates the response in place. Raising any exception marks
# the request as failed and the client gets a 500 instead.
Handler = Callable[[Request, Response], None]


# =============================================================================
# ERRORS
# =============================================================================

class CallbackError(Exception):
    """Base class for registry errors. Carries the (method, path) pair."""

    def __init__(self, message: str, method: HTTPMethod, path: str):
        super().__init__(message)
        self.method = method
        self.path = path


class CallbackAlreadyRegisteredError(CallbackError):
    """A handler already exists for this (method, path)."""

    def __init__(self, method: HTTPMethod, path: str):
        super().__init__(
            f"{method} callback with path '{path}' has already been registered",
            method, path,
        )


class CallbackNotRegisteredError(CallbackError):
    """No handler exists for this (method, path)."""

    def __init__(self, method: HTTPMethod, path: str):
        super().__init__(
            f"{method} callback with path '{path}' has not been registered",
            method, path,
        )


class CallbackRuntimeError(CallbackError):
    """
    A handler raised while serving a request.

    The original exception is kept as `inner` and chained as __cause__.
    """

    def __init__(self, method: HTTPMethod, path: str, inner: BaseException):
        super().__init__(
            f"an error occurred while invoking a callback ({method} with path '{path}'): {inner}",
            method, path,
        )
        self.inner = inner


class CallbackRegistryFrozenError(CallbackError):
    """Registration attempted after the server started."""

    def __init__(self, method: HTTPMethod, path: str):
        super().__init__(
            f"cannot register {method} callback with path '{path}': the server has already started",
            method, path,
        )


# =============================================================================
# REGISTRY
# =============================================================================

class CallbackRegistry:
    """
    Exact-match table from (method, path) to a single handler.

    Example:
        registry = CallbackRegistry()
        registry.register(HTTPMethod.GET, "/", index)

        response = Response()
        registry.invoke(HTTPMethod.GET, "/", request, response)
    """

    def __init__(self):
        self._callbacks: Dict[HTTPMethod, Dict[str, Handler]] = {
            method: {} for method in HTTPMethod
        }
        self._frozen = False

    def register(self, method: HTTPMethod, path: str, handler: Handler) -> None:
        """
        Register `handler` for exactly this method and path.

        Raises:
            CallbackAlreadyRegisteredError: The pair is taken. The existing
                                            handler stays in place.
            CallbackRegistryFrozenError: The registry was frozen.
        """
        method = HTTPMethod(method)

        if self._frozen:
            raise CallbackRegistryFrozenError(method, path)

        callbacks = self._callbacks[method]
        if path in callbacks:
            raise CallbackAlreadyRegisteredError(method, path)

        callbacks[path] = handler
        logger.debug(f"Registered {method} {path} → {getattr(handler, '__name__', handler)}")

    def invoke(self, method: HTTPMethod, path: str, request: Request, response: Response) -> None:
        """
        Call the handler for (method, path) with the request and response.

        Raises:
            CallbackNotRegisteredError: Nothing is registered for the pair;
                                        no handler is called.
            CallbackRuntimeError: The handler raised. The response may have
                                  been partly modified and should be
                                  discarded.
        """
        method = HTTPMethod(method)

        handler = self._callbacks[method].get(path)
        if handler is None:
            raise CallbackNotRegisteredError(method, path)

        try:
            handler(request, response)
        except Exception as e:
            raise CallbackRuntimeError(method, path, e) from e

    def freeze(self) -> None:
        """Refuse any further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def handlers_for(self, method: HTTPMethod) -> Dict[str, Handler]:
        """Copy of the path → handler table for one method."""
        return dict(self._callbacks[HTTPMethod(method)])

    def __contains__(self, key: Tuple[HTTPMethod, str]) -> bool:
        method, path = key
        return path in self._callbacks[HTTPMethod(method)]

    def __len__(self) -> int:
        return sum(len(callbacks) for callbacks in self._callbacks.values())

    def __iter__(self) -> Iterator[Tuple[HTTPMethod, str]]:
        for method, callbacks in self._callbacks.items():
            for path in callbacks:
                yield method, path
