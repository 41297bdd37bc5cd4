from ..model import Application, Service, mount


class Bridge:
	"""Base class for the bridges that hand requests to an application
	without going through the socket server."""

	def __init__(self, application: Application):
		self.application: Application = application
		if not self.application:
			raise ValueError("Bridge has not been given an application")


def components(*components: Application | Service) -> Application:
	return mount(*components)


# EOF
