"""Pytest fixtures shared across bridge backend tests."""
from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from backend.bridge import app
from backend.bridge.services import dependencies
from backend.bridge.services.bridge_service import BridgeService
from backend.bridge.services.config import BridgeConfig


class FakeConnection:
    """Connection stub recording every call in order."""

    def __init__(self, connected: bool = False, fail_connect: bool = False) -> None:
        self.connected = connected
        self.fail_connect = fail_connect
        self.fail_writes = False
        self.calls: List[Tuple[str, Any]] = []

    def is_connected(self) -> bool:
        return self.connected

    def connect(self) -> None:
        self.calls.append(("connect", None))
        if self.fail_connect:
            raise OSError("link refused")
        self.connected = True

    def disconnect(self) -> None:
        self.calls.append(("disconnect", None))
        self.connected = False

    def write_all(self, message: bytes) -> None:
        if self.fail_writes:
            raise OSError("write failed")
        self.calls.append(("write_all", message))

    def write_image(self, payload: bytes) -> None:
        if self.fail_writes:
            raise OSError("write failed")
        self.calls.append(("write_image", payload))

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    @property
    def writes(self) -> List[Tuple[str, Any]]:
        return [call for call in self.calls if call[0].startswith("write")]


class FakeImage:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def as_binary_buffer(self) -> bytes:
        return self._payload


class FakeDevice:
    """Encoder stub returning the encoder name as the message."""

    def __init__(self) -> None:
        self.config: Dict[str, Any] = {"brightness": 80, "clock": {"mode": 1}}
        self.encoded: List[Tuple[str, Dict[str, Any]]] = []
        self.reject: Optional[str] = None

    def _encode(self, name: str, settings: Dict[str, Any]) -> bytes:
        if name == self.reject:
            raise ValueError(f"{name} settings incomplete")
        self.encoded.append((name, dict(settings)))
        return name.encode("ascii")

    def score(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("score", settings)

    def brightness(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("brightness", settings)

    def fullday(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("fullday", settings)

    def datetime(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("datetime", settings)

    def clock(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("clock", settings)

    def lighting(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("lighting", settings)

    def climate(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("climate", settings)

    def effect(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("effect", settings)

    def visualization(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("visualization", settings)

    def power_screen(self, settings: Dict[str, Any]) -> bytes:
        return self._encode("power_screen", settings)

    async def set_img(self, path: Optional[str]) -> FakeImage:
        self.encoded.append(("set_img", {"path": path}))
        return FakeImage(f"img:{path}".encode("utf-8"))


class FakeMqttClient:
    """paho client stub capturing subscriptions and publishes."""

    def __init__(self) -> None:
        self.subscribed: List[Tuple[str, int]] = []
        self.published: List[Tuple[str, Any]] = []
        self.credentials: Optional[Tuple[str, str]] = None
        self.connect_args: Optional[Tuple[str, int, int]] = None
        self.loop_running = False
        self.disconnected = False
        self.on_connect = None
        self.on_connect_fail = None
        self.on_disconnect = None
        self.on_message = None

    def username_pw_set(self, username: str, password: str) -> None:
        self.credentials = (username, password)

    def connect_async(self, host: str, port: int, keepalive: int) -> None:
        self.connect_args = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append((topic, qos))

    def publish(self, topic: str, payload: Any, qos: int = 0) -> None:
        self.published.append((topic, payload))


@pytest.fixture(autouse=True)
def bridge_env_sandbox(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "BRIDGE_PORT",
        "BRIDGE_AUTO_CONNECT",
        "BRIDGE_DEVICE_FACTORY",
        "BRIDGE_CONNECTION_FACTORY",
        "BRIDGE_UPLOAD_DIR",
        "BRIDGE_PUBLIC_DIR",
        "BRIDGE_MQTT_ENABLED",
        "BRIDGE_MQTT_HOST",
        "BRIDGE_MQTT_PORT",
        "BRIDGE_MQTT_USERNAME",
        "BRIDGE_MQTT_PASSWORD",
        "BRIDGE_MQTT_TOPIC",
        "BRIDGE_MQTT_CLIENT_ID",
        "BRIDGE_MQTT_KEEPALIVE",
        "BRIDGE_URL",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setenv("BRIDGE_CONFIG_PATH", str(tmp_path / "bridge_config.json"))


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection(connected=True)


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def mqtt_client() -> FakeMqttClient:
    return FakeMqttClient()


@pytest.fixture
def bridge_config(tmp_path: Path) -> BridgeConfig:
    return BridgeConfig(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def service(
    device: FakeDevice,
    connection: FakeConnection,
    bridge_config: BridgeConfig,
    mqtt_client: FakeMqttClient,
) -> BridgeService:
    return BridgeService(
        device,
        connection,
        config=bridge_config,
        mqtt_client_factory=lambda _config: mqtt_client,
    )


@pytest_asyncio.fixture(name="client")
async def client_fixture(service: BridgeService) -> AsyncGenerator[AsyncClient, None]:
    async def _override() -> BridgeService:
        return service

    app.dependency_overrides[dependencies.get_service] = _override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(dependencies.get_service, None)
