"""Tests for the cdplink CLI."""

import json
from typing import Any

import pytest
from conftest import FakeChannel, echo_result
from typer.testing import CliRunner

from cdplink import cli
from cdplink.config import ClientSettings
from cdplink.core.cdp_client import CDPClient, CDPTarget
from cdplink.core.exceptions import CannotConnectError, InvalidTabError
from cdplink.core.session import CDPSession

runner = CliRunner()

TARGETS = [
    CDPTarget(
        id="AAA111222333444",
        title="My App",
        url="http://localhost:3000/",
        target_type="page",
        description="",
        websocket_url="ws://localhost:9222/devtools/page/AAA111222333444",
    ),
    CDPTarget(
        id="BBB111222333444",
        title="Docs",
        url="https://example.com/docs",
        target_type="page",
        description="",
        websocket_url="ws://localhost:9222/devtools/page/BBB111222333444",
    ),
]


class FakeClient:
    channel: FakeChannel
    reachable = True
    opened: list[Any]

    def __init__(self, settings: ClientSettings | None = None, **kwargs: Any) -> None:
        self.settings = settings

    def list_targets(self) -> list[CDPTarget]:
        if not self.reachable:
            raise CannotConnectError("Cannot connect to Chrome at http://localhost:9222")
        return TARGETS

    find_target = CDPClient.find_target

    def connect(self, target: CDPTarget) -> CDPSession:
        FakeClient.opened.append(target.id)
        return CDPSession(FakeClient.channel, settings=ClientSettings(wait_timeout=0.1))

    def connect_to_tab(self, index: int) -> CDPSession:
        if index >= len(TARGETS):
            raise InvalidTabError(f"Tab {index} does not exist")
        FakeClient.opened.append(index)
        return CDPSession(FakeClient.channel, settings=ClientSettings(wait_timeout=0.1))

    def connect_to_target(self, target_id: str) -> CDPSession:
        FakeClient.opened.append(target_id)
        return CDPSession(FakeClient.channel, settings=ClientSettings(wait_timeout=0.1))


@pytest.fixture(autouse=True)
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[FakeClient]:
    FakeClient.channel = FakeChannel(responder=echo_result)
    FakeClient.reachable = True
    FakeClient.opened = []
    monkeypatch.setattr(cli, "CDPClient", FakeClient)
    return FakeClient


class TestTargets:
    """Tests for `cdplink targets`."""

    def test_table(self) -> None:
        result = runner.invoke(cli.app, ["targets"])

        assert result.exit_code == 0
        assert "My App" in result.output

    def test_json(self) -> None:
        result = runner.invoke(cli.app, ["targets", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["id"] == "AAA111222333444"

    def test_unreachable(self, fake_client: type[FakeClient]) -> None:
        fake_client.reachable = False

        result = runner.invoke(cli.app, ["targets"])

        assert result.exit_code == 1
        assert "Cannot connect" in result.output

    def test_filter_by_url(self) -> None:
        result = runner.invoke(cli.app, ["targets", "--json", "--url", "example.com"])

        assert result.exit_code == 0
        assert [t["id"] for t in json.loads(result.output)] == ["BBB111222333444"]

    def test_filter_without_match(self) -> None:
        result = runner.invoke(cli.app, ["targets", "--url", "nowhere"])

        assert result.exit_code == 0
        assert "No targets found" in result.output


class TestSend:
    """Tests for `cdplink send`."""

    def test_send_prints_response(self, fake_client: type[FakeClient]) -> None:
        result = runner.invoke(
            cli.app, ["send", "Runtime.evaluate", "--params", '{"expression": "1"}']
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == {"id": 1, "result": {}}
        assert fake_client.channel.sent[0]["params"] == {"expression": "1"}
        assert fake_client.channel.close_calls == 1

    def test_send_by_target_id(self, fake_client: type[FakeClient]) -> None:
        result = runner.invoke(cli.app, ["send", "Page.enable", "--target", "XYZ"])

        assert result.exit_code == 0
        assert fake_client.opened == ["XYZ"]

    def test_send_by_url(self, fake_client: type[FakeClient]) -> None:
        result = runner.invoke(cli.app, ["send", "Page.enable", "--url", "/docs"])

        assert result.exit_code == 0
        assert fake_client.opened == ["BBB111222333444"]
        assert json.loads(result.output) == {"id": 1, "result": {}}

    def test_send_by_unknown_url(self, fake_client: type[FakeClient]) -> None:
        result = runner.invoke(cli.app, ["send", "Page.enable", "--url", "nowhere"])

        assert result.exit_code == 1
        assert "No target matching" in result.output
        assert fake_client.opened == []

    def test_invalid_params(self) -> None:
        result = runner.invoke(cli.app, ["send", "Page.enable", "--params", "{oops"])

        assert result.exit_code != 0

    def test_rejected(self, fake_client: type[FakeClient]) -> None:
        fake_client.channel.responder = lambda m: [
            {"id": m["id"], "error": {"code": -32601, "message": "not found"}}
        ]

        result = runner.invoke(cli.app, ["send", "Nope.nope"])

        assert result.exit_code == 1
        assert "Rejected" in result.output

    def test_invalid_tab(self) -> None:
        result = runner.invoke(cli.app, ["send", "Page.enable", "--tab", "5"])

        assert result.exit_code == 1
        assert "Tab 5 does not exist" in result.output


class TestWait:
    """Tests for `cdplink wait`."""

    def test_wait_after_enable(self, fake_client: type[FakeClient]) -> None:
        fake_client.channel.responder = lambda m: [
            {"id": m["id"], "result": {}},
            {"method": "Page.frameNavigated", "params": {}},
            {"method": "Page.loadEventFired", "params": {"timestamp": 1.0}},
        ]

        result = runner.invoke(cli.app, ["wait", "Page.loadEventFired", "--enable", "Page.enable"])

        assert result.exit_code == 0
        assert json.loads(result.output)["params"] == {"timestamp": 1.0}
        assert [m["method"] for m in fake_client.channel.sent] == ["Page.enable"]

    def test_wait_by_url(self, fake_client: type[FakeClient]) -> None:
        fake_client.channel.push({"method": "Page.loadEventFired", "params": {}})

        result = runner.invoke(cli.app, ["wait", "Page.loadEventFired", "--url", "localhost:3000"])

        assert result.exit_code == 0
        assert fake_client.opened == ["AAA111222333444"]

    def test_wait_times_out(self) -> None:
        result = runner.invoke(cli.app, ["wait", "Page.loadEventFired", "--timeout", "0.05"])

        assert result.exit_code == 1
        assert "No Page.loadEventFired event received" in result.output


class TestDoctor:
    """Tests for `cdplink doctor`."""

    def test_available(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "check_cdp_connection", lambda host, port: True)

        result = runner.invoke(cli.app, ["doctor", "--port", "9333"])

        assert result.exit_code == 0
        assert "9333" in result.output

    def test_unavailable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "check_cdp_connection", lambda host, port: False)

        result = runner.invoke(cli.app, ["doctor"])

        assert result.exit_code == 1
