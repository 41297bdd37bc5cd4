from fileserver.http.model import HTTPHeaders, HTTPRequest, HTTPRequestLine
from fileserver.http.parser import HTTPParser, parseQuery


def requests(parser: HTTPParser, *chunks: bytes) -> list[HTTPRequest]:
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


def test_parse_split_chunks() -> None:
	parser = HTTPParser()
	atoms = []
	for chunk in [
		b"GET /time/5 ",
		b"HTTP/1.1\r\nHost: ",
		b"127.0.0.1\r",
		b"\nConn",
		b"ection: close\r\n",
		b"\r",
		b"\n",
	]:
		atoms += list(parser.feed(chunk))
	assert isinstance(atoms[0], HTTPRequestLine)
	assert isinstance(atoms[1], HTTPHeaders)
	req = atoms[-1]
	assert isinstance(req, HTTPRequest)
	assert req.method == "GET"
	assert req.path == "/time/5"
	assert req.protocol == "HTTP/1.1"
	assert req.header("connection") == "close"
	assert req.header("Host") == "127.0.0.1"


def test_parse_decodes_path_and_query() -> None:
	(req,) = requests(
		HTTPParser(), b"GET /a%20b/c.mkv?x=1+2&y=%2F&flag HTTP/1.1\r\n\r\n"
	)
	assert req.path == "/a b/c.mkv"
	assert req.query == {"x": "1 2", "y": "/", "flag": ""}
	assert req.param("x") == "1 2"
	assert req.param("missing", "default") == "default"


def test_parse_pipelined_requests() -> None:
	reqs = requests(
		HTTPParser(),
		b"GET /a HTTP/1.1\r\nHost: x\r\n\r\nHEAD /b HTTP/1.1\r\nHost: x\r\n\r\n",
	)
	assert [(_.method, _.path) for _ in reqs] == [("GET", "/a"), ("HEAD", "/b")]


def test_parse_body_with_length() -> None:
	(req,) = requests(
		HTTPParser(),
		b"POST /upload HTTP/1.1\r\nContent-Length: 5\r\n",
		b"\r\nhel",
		b"lo",
	)
	assert req.body.length == 5
	assert req.body.payload == b"hello"


def test_parse_query() -> None:
	assert parseQuery("") == {}
	assert parseQuery("file=sub%2Fclip+one.mkv") == {"file": "sub/clip one.mkv"}


# EOF
