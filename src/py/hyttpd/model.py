from abc import ABC, abstractmethod
from typing import Any, Coroutine, Optional

from .http.model import HTTPRequest, HTTPResponse

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service(ABC):
	"""A service handles every request the server receives. There is no
	routing: the server gives each parsed request to `process`."""

	def __init__(self, name: Optional[str] = None) -> None:
		self.name: str = name or self.__class__.__name__
		self.init()

	def init(self) -> None:
		pass

	async def start(self) -> None:
		"""Can be overridden to do asynchronous pre-start work"""
		pass

	async def stop(self) -> None:
		"""Can be overridden to do asynchronous post-stop work"""
		pass

	@abstractmethod
	def process(
		self, request: HTTPRequest
	) -> HTTPResponse | Coroutine[Any, Any, HTTPResponse]: ...

	def __repr__(self) -> str:
		return f"(Service {self.name})"


# EOF
