from typing import ClassVar, Union, Callable, TypeVar, Any, cast

T = TypeVar("T")


class Extra:
    """Defines the attributes used by decorators to annotate handlers"""

    ON: ClassVar[str] = "_fileserver_on"
    ON_PRIORITY: ClassVar[str] = "_fileserver_on_priority"

    @staticmethod
    def Meta(scope: Any) -> dict[str, Any]:
        """Returns the dictionary of meta attributes for the given value."""
        if isinstance(scope, type):
            if not hasattr(scope, "__fileserver__"):
                setattr(scope, "__fileserver__", {})
            return cast(dict[str, Any], getattr(scope, "__fileserver__"))
        elif hasattr(scope, "__dict__"):
            return cast(dict[str, Any], scope.__dict__)
        else:
            raise RuntimeError(f"Metadata cannot be attached to object: {scope}")


def on(
    priority: int = 0, **methods: Union[str, list[str], tuple[str, ...]]
) -> Callable[[T], T]:
    """The @on decorator marks a service method as the handler of the HTTP
    requests matching the given methods and URI patterns (see `Route`).

    Methods are given as keyword arguments, several methods can be joined
    with `_`, and each takes a pattern or a list/tuple of patterns:

    >    @on(GET_HEAD=("/", "/{path:any}"))

    implies that the wrapped method is like

    >    def read(self, request, path="."):
    >        ....

    and that it returns a response, typically created by `request.respond(...)`.
    When more than one handler matches, the one with the highest `priority`
    wins."""

    def decorator(function: T) -> T:
        meta = Extra.Meta(function)
        v = meta.setdefault(Extra.ON, [])
        meta.setdefault(Extra.ON_PRIORITY, priority)
        for http_methods, url in list(methods.items()):
            urls = (url,) if isinstance(url, str) else url
            for http_method in http_methods.upper().split("_"):
                for _ in urls:
                    v.append((http_method, _))
        return function

    return decorator


# EOF
