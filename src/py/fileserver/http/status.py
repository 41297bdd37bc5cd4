# --
# Reason phrases for the status codes the server produces, the rest are
# there so that `HTTP_STATUS.get()` gives a sensible message when a handler
# picks an unusual code.

HTTP_STATUS: dict[int, str] = {
	200: "OK",
	201: "Created",
	204: "No Content",
	206: "Partial Content",
	301: "Moved Permanently",
	302: "Found",
	304: "Not Modified",
	400: "Bad Request",
	403: "Forbidden",
	404: "Not Found",
	405: "Method Not Allowed",
	408: "Request Timeout",
	412: "Precondition Failed",
	416: "Range Not Satisfiable",
	500: "Internal Server Error",
	501: "Not Implemented",
	503: "Service Unavailable",
}

# EOF
