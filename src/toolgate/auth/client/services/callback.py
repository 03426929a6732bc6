"""Local HTTP listener for the OAuth redirect.

Runs a single-route starlette app on uvicorn, bound to the host and port of
the redirect URI. The listener settles exactly once: the first callback
request either completes it (with whatever ``on_code`` returns) or fails it.
"""

from __future__ import annotations

import asyncio
import html
import logging
import socket
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlparse

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from toolgate.auth.client.models.errors import (
    AuthorizationError,
    AuthorizationTimeoutError,
    ListenerError,
)
from toolgate.auth.client.models.flow import CallbackParams, ListenerState

logger = logging.getLogger(__name__)

_PAGE = """<html>
  <head><title>{title}</title></head>
  <body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
    <h1 style="color: {color};">{title}</h1>
    <p>{message}</p>
    {detail}
  </body>
</html>"""


def _render_page(title: str, color: str, message: str, detail: str = "") -> str:
    return _PAGE.format(
        title=title,
        color=color,
        message=message,
        detail=f"<pre>{html.escape(detail)}</pre>" if detail else "",
    )


def _bind_host(hostname: str | None) -> str:
    if hostname in (None, "localhost"):
        return "127.0.0.1"
    return hostname


class CallbackListener:
    """Single-shot OAuth redirect listener.

    States move ``IDLE -> LISTENING -> COMPLETED | FAILED``. Only one callback
    request is ever processed; later requests get 410 Gone.
    """

    def __init__(
        self,
        redirect_uri: str,
        on_code: Callable[[str], Awaitable[Any]],
        log_level: str = "warning",
    ):
        """Initialize the listener.

        Args:
            redirect_uri: Registered redirect URI; its host, port and path
                decide where the listener binds and routes
            on_code: Coroutine run with the authorization code while the
                browser waits; its return value completes the listener
            log_level: uvicorn log level
        """
        parsed = urlparse(redirect_uri)
        self.redirect_uri = redirect_uri
        self.host = _bind_host(parsed.hostname)
        self.port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self.callback_path = parsed.path or "/"
        self.state = ListenerState.IDLE

        self._on_code = on_code
        self._log_level = log_level
        self._claimed = False
        self._result: asyncio.Future | None = None
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None

        self._app = Starlette(
            routes=[Route(self.callback_path, self._handle_callback, methods=["GET"])]
        )

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, which differs from ``port`` only when it is 0."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    async def start(self) -> None:
        """Bind the port and start serving.

        Raises:
            ListenerError: If the listener was already started or the port
                cannot be bound
        """
        if self.state is not ListenerState.IDLE:
            raise ListenerError(f"Callback listener already {self.state.value}")

        self._result = asyncio.get_running_loop().create_future()
        self._socket = self._bind()

        config = uvicorn.Config(
            app=self._app, log_level=self._log_level, lifespan="off"
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        while not self._server.started:
            if self._serve_task.done():
                self.state = ListenerState.FAILED
                self._close_socket()
                raise ListenerError(
                    f"Callback server on port {self.port} exited during startup"
                )
            await asyncio.sleep(0.01)

        self.state = ListenerState.LISTENING
        logger.info(f"Callback server listening at {self.redirect_uri}")

    async def wait(self, timeout: float | None = None) -> Any:
        """Wait for the callback to settle the listener.

        Args:
            timeout: Seconds to wait for a callback to arrive, None to wait
                indefinitely. A callback received in time runs to completion.

        Returns:
            The value returned by ``on_code``

        Raises:
            AuthorizationError: If the callback carried an error or no code
            AuthorizationTimeoutError: If no callback arrived before the deadline
            ListenerError: If the server stopped before a callback arrived
            Exception: Whatever ``on_code`` raised
        """
        if self._result is None or self._serve_task is None:
            raise ListenerError("Callback listener has not been started")

        done, _ = await asyncio.wait(
            {self._result, self._serve_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )

        if self._claimed and not self._result.done() and self._serve_task not in done:
            # A callback is already being exchanged; its outcome stands
            done, _ = await asyncio.wait(
                {self._result, self._serve_task}, return_when=asyncio.FIRST_COMPLETED
            )

        if self._result.done():
            return self._result.result()

        self._claimed = True
        self.state = ListenerState.FAILED
        if self._serve_task in done:
            raise ListenerError("Callback server stopped before a callback was received")
        raise AuthorizationTimeoutError(
            f"No authorization callback received within {timeout} seconds"
        )

    async def close(self) -> None:
        """Stop the server and release the port. Safe to call more than once."""
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            try:
                await self._serve_task
            except Exception as e:
                logger.warning(f"Callback server raised during shutdown: {e}")
            self._serve_task = None
        self._close_socket()

        if self._result is not None and not self._result.done():
            self._result.cancel()
        if self.state is ListenerState.LISTENING:
            self.state = ListenerState.FAILED
        logger.debug(f"Callback server on port {self.port} closed")

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host.strip("[]"), self.port))
            sock.listen()
        except OSError as e:
            sock.close()
            self.state = ListenerState.FAILED
            raise ListenerError(
                f"Failed to start callback server on {self.host}:{self.port}: {e}"
            ) from e
        sock.setblocking(False)
        return sock

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    async def _handle_callback(self, request: Request) -> Response:
        if request.method != "GET":
            return Response(status_code=405, headers={"Allow": "GET"})
        if self._claimed or self._result is None or self._result.done():
            return HTMLResponse(
                _render_page(
                    "Callback Already Handled",
                    "gray",
                    "This authorization attempt has already finished.",
                ),
                status_code=410,
            )
        self._claimed = True

        params = CallbackParams.from_query(request.query_params)

        if params.is_error():
            return self._fail(
                AuthorizationError(
                    f"Authorization error: {params.error} - {params.error_description}",
                    error=params.error,
                    error_description=params.error_description,
                ),
                status_code=400,
            )
        if params.code is None:
            return self._fail(
                AuthorizationError("Authorization code not received"), status_code=400
            )

        try:
            result = await self._on_code(params.code)
        except Exception as e:
            return self._fail(e, status_code=502)

        self.state = ListenerState.COMPLETED
        self._result.set_result(result)
        logger.info("Authorization callback handled successfully")
        return HTMLResponse(
            _render_page(
                "Authentication Successful",
                "green",
                "You may close this tab and return to your application.",
            )
        )

    def _fail(self, error: Exception, status_code: int) -> HTMLResponse:
        logger.error(f"Error handling callback: {error}")
        self.state = ListenerState.FAILED
        self._result.set_exception(error)
        return HTMLResponse(
            _render_page(
                "Authentication Failed", "red", "Please try again.", detail=str(error)
            ),
            status_code=status_code,
        )
