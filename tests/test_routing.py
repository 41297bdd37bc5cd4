import pytest

from fileserver import HTTPRequest, HTTPRequestError, HTTPResponse, Service, on
from fileserver.routing import Dispatcher, Handler, Route

from conftest import request
from fileserver.bridge.python import run


def test_route_match() -> None:
	assert Route("/").match("/") == {}
	assert Route("/{path:any}").match("/a/b c") == {"path": "a/b c"}
	assert Route("/{path:any}").match("/") == {"path": ""}
	assert Route("/speedtest").match("/speedtest") == {}
	assert Route("/speedtest").match("/speedtest/") is None
	assert Route("/echo/{name:any}").match("/echo/a/b") == {"name": "a/b"}
	# Text chunks are matched literally
	assert Route("/a.b").match("/axb") is None


def test_route_unknown_pattern() -> None:
	with pytest.raises(ValueError):
		Route("/post/{id:int}")


def test_dispatcher_priority() -> None:
	low = Handler(lambda r, path: None, [("GET", "/{path:any}")])
	high = Handler(lambda r: None, [("GET", "/speedtest")], priority=1)
	for handlers in ((low, high), (high, low)):
		dispatcher = Dispatcher()
		for _ in handlers:
			dispatcher.register(_)
		route, params = dispatcher.match("GET", "/speedtest")
		assert route is not None and route.handler is high
		route, params = dispatcher.match("GET", "/other")
		assert route is not None and route.handler is low
		assert params == {"path": "other"}
		assert dispatcher.match("DELETE", "/other") == (None, {})


class Echo(Service):
	@on(GET="/echo/{name:any}")
	def echo(self, request: HTTPRequest, name: str) -> HTTPResponse:
		return request.respondText(name)

	@on(GET="/forbidden")
	def forbidden(self, request: HTTPRequest) -> HTTPResponse:
		raise HTTPRequestError("nope", 403)


def test_service_handlers() -> None:
	service = Echo()
	assert sorted(_.functor.__name__ for _ in service.handlers) == [
		"echo",
		"forbidden",
	]
	bridge = run(service)
	assert service.isMounted
	res = request(bridge, "/echo/hello")
	assert res.status == 200
	assert res.body == b"hello"
	assert res.headers["Content-Length"] == "5"


def test_service_errors() -> None:
	bridge = run(Echo())
	res = request(bridge, "/forbidden")
	assert res.status == 403
	assert res.body == b"nope"
	res = request(bridge, "/unknown")
	assert res.status == 404
	res = request(bridge, "/echo/hello", method="POST")
	assert res.status == 404


# EOF
