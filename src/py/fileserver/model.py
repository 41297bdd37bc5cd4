from typing import Optional, Iterable, ClassVar, Any, Coroutine, NamedTuple

from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    NO_HANDLER: ClassVar[list[str]] = [
        "name",
        "app",
        "_handlers",
        "isMounted",
        "handlers",
    ]

    def __init__(self, name: Optional[str] = None) -> None:
        self.name: str = name or self.__class__.__name__
        self.app: Optional[Application] = None
        self._handlers: Optional[list[Handler]] = None

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    @property
    def handlers(self) -> list[Handler]:
        if self._handlers is None:
            self._handlers = list(self.iterHandlers())
        return self._handlers

    def iterHandlers(self) -> Iterable[Handler]:
        for value in (getattr(self, _) for _ in dir(self) if _ not in self.NO_HANDLER):
            handler = Handler.Get(value)
            if handler:
                yield handler

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    def __init__(self, services: list[Service] | None = None) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        for service in services or ():
            self.mount(service)

    def process(
        self, request: HTTPRequest
    ) -> HTTPResponse | Coroutine[Any, Any, HTTPResponse]:
        route, params = self.dispatcher.match(
            request.method or "GET", request.path or "/"
        )
        if route and route.handler:
            return route.handler(request, params)
        else:
            return self.onRouteNotFound(request)

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
        return request.notFound()

    def mount(self, service: Service) -> Service:
        if service.isMounted:
            raise RuntimeError(
                f"Cannot mount service, it is already mounted: {service}"
            )
        for handler in service.handlers:
            self.dispatcher.register(handler)
        service.app = self
        self.services.append(service)
        return service


class Components(NamedTuple):
    """Groups Application and Service objects together"""

    app: Application
    services: list[Service]

    @staticmethod
    def Make(components: Iterable[Application | Service]) -> "Components":
        """Makes a Component value given the applications and services."""
        apps: list[Application] = []
        services: list[Service] = []
        for item in components:
            if isinstance(item, Application):
                apps.append(item)
            elif isinstance(item, Service):
                services.append(item)
            else:
                raise RuntimeError(f"Unsupported component type {type(item)}: {item}")
        return Components(apps[0] if apps else Application(), services)


def mount(*components: Application | Service) -> Application:
    """Mounts the given components into an application"""
    c = Components.Make(components)
    app: Application = c.app
    for service in c.services:
        app.mount(service)
    return app


# EOF
