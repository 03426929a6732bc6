"""Tests for the single-shot OAuth callback listener.

These bind real loopback sockets and talk to the listener over HTTP.
"""

import asyncio
import socket

import httpx
import pytest

from toolgate.auth.client.models.errors import (
    AuthorizationError,
    AuthorizationTimeoutError,
    ListenerError,
)
from toolgate.auth.client.models.flow import ListenerState
from toolgate.auth.client.services.callback import CallbackListener


async def _echo_code(code: str) -> str:
    return f"token-for-{code}"


class TestCallbackListener:
    async def test_completes_with_on_code_result(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"http://127.0.0.1:{free_port}/callback", params={"code": "xyz"}
                )
            result = await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert response.status_code == 200
        assert "Authentication Successful" in response.text
        assert result == "token-for-xyz"
        assert listener.state is ListenerState.COMPLETED

    async def test_provider_error_fails_and_frees_port(self, free_port):
        # Arrange
        redirect_uri = f"http://localhost:{free_port}/callback"
        listener = CallbackListener(redirect_uri, on_code=_echo_code)
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"http://127.0.0.1:{free_port}/callback",
                    params={
                        "error": "access_denied",
                        "error_description": "User <denied> access",
                    },
                )
            with pytest.raises(AuthorizationError) as exc_info:
                await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert response.status_code == 400
        assert "Authentication Failed" in response.text
        assert "&lt;denied&gt;" in response.text
        assert exc_info.value.error == "access_denied"
        assert exc_info.value.error_description == "User <denied> access"
        assert listener.state is ListenerState.FAILED

        # The port can be bound again right away
        second = CallbackListener(redirect_uri, on_code=_echo_code)
        await second.start()
        await second.close()

    async def test_missing_code(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                response = await client.get(f"http://127.0.0.1:{free_port}/callback")
            with pytest.raises(AuthorizationError, match="code not received"):
                await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert response.status_code == 400

    async def test_on_code_failure_propagates(self, free_port):
        # Arrange
        async def failing_exchange(code):
            raise RuntimeError("exchange rejected")

        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=failing_exchange
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"http://127.0.0.1:{free_port}/callback", params={"code": "xyz"}
                )
            with pytest.raises(RuntimeError, match="exchange rejected"):
                await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert response.status_code == 502
        assert "exchange rejected" in response.text

    async def test_only_first_callback_is_processed(self, free_port):
        # Arrange
        calls = []

        async def on_code(code):
            calls.append(code)
            return code

        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=on_code
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                first = await client.get(
                    f"http://127.0.0.1:{free_port}/callback", params={"code": "one"}
                )
                second = await client.get(
                    f"http://127.0.0.1:{free_port}/callback", params={"code": "two"}
                )
            result = await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert first.status_code == 200
        assert second.status_code == 410
        assert result == "one"
        assert calls == ["one"]

    async def test_other_paths_are_not_found(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"http://127.0.0.1:{free_port}/favicon.ico"
                )
        finally:
            await listener.close()

        # Assert
        assert response.status_code == 404

    async def test_times_out(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act & Assert
            with pytest.raises(AuthorizationTimeoutError):
                await listener.wait(timeout=0.1)
        finally:
            await listener.close()

        assert listener.state is ListenerState.FAILED

    async def test_port_in_use(self, free_port):
        # Arrange
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", free_port))
        blocker.listen()
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )

        try:
            # Act & Assert
            with pytest.raises(ListenerError, match="Failed to start callback server"):
                await listener.start()
        finally:
            blocker.close()

        assert listener.state is ListenerState.FAILED

    async def test_cannot_start_twice(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act & Assert
            with pytest.raises(ListenerError, match="already listening"):
                await listener.start()
        finally:
            await listener.close()

    async def test_wait_before_start(self):
        listener = CallbackListener("http://localhost:3000/callback", on_code=_echo_code)

        with pytest.raises(ListenerError, match="has not been started"):
            await listener.wait()

    def test_parses_redirect_uri(self):
        # Act
        listener = CallbackListener(
            "http://localhost:8765/oauth/callback", on_code=_echo_code
        )

        # Assert
        assert listener.host == "127.0.0.1"
        assert listener.port == 8765
        assert listener.callback_path == "/oauth/callback"
        assert listener.state is ListenerState.IDLE
        assert listener.bound_port is None


class TestCallbackDeadline:
    async def test_callback_in_progress_outlives_deadline(self, free_port):
        # Arrange
        exchange_started = asyncio.Event()

        async def slow_exchange(code):
            exchange_started.set()
            await asyncio.sleep(0.5)
            return f"token-for-{code}"

        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=slow_exchange
        )
        await listener.start()

        try:
            async with httpx.AsyncClient() as client:
                browser = asyncio.create_task(
                    client.get(
                        f"http://127.0.0.1:{free_port}/callback", params={"code": "c"}
                    )
                )
                await exchange_started.wait()

                # Act
                result = await listener.wait(timeout=0.05)
                response = await browser
        finally:
            await listener.close()

        # Assert
        assert result == "token-for-c"
        assert response.status_code == 200
        assert listener.state is ListenerState.COMPLETED


class TestNonGetRequests:
    async def test_head_does_not_claim_listener(self, free_port):
        # Arrange
        listener = CallbackListener(
            f"http://localhost:{free_port}/callback", on_code=_echo_code
        )
        await listener.start()

        try:
            # Act
            async with httpx.AsyncClient() as client:
                head = await client.head(f"http://127.0.0.1:{free_port}/callback")
                get = await client.get(
                    f"http://127.0.0.1:{free_port}/callback", params={"code": "c"}
                )
            result = await listener.wait(timeout=5)
        finally:
            await listener.close()

        # Assert
        assert head.status_code == 405
        assert get.status_code == 200
        assert result == "token-for-c"
