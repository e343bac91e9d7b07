# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json

import pytest

from adapters.sdk.widget_bridge import WidgetBridge
from orchestrator.enums.phase import Phase
from orchestrator.errors import SdkInitializationError, SdkNotReadyError
from orchestrator.runtime_context import SdkSettings
from phone_fakes import CHROME_UA, SleepRecorder, make_config
from session.controller import CallIntegrationController
from spec import WORKSPACE_HIDDEN_CLASS, WORKSPACE_VISIBLE_CLASS


def msg(**data) -> str:
    return json.dumps(data)


def settings(**kwargs) -> SdkSettings:
    return SdkSettings(api_id="id", api_token="token", **kwargs)


def types(messages) -> list[str]:
    return [m["type"] for m in messages]


def test_send_is_dropped_while_detached():
    bridge = WidgetBridge()

    bridge.send({"type": "WORKSPACE_SHOW"})

    assert bridge.drain_outbound() == ()


def test_hello_reports_environment_and_container():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        with pytest.raises(SdkNotReadyError):
            await bridge.cookie_probe()

        result = await bridge.on_json_message(msg(
            type="HELLO",
            user_agent=CHROME_UA,
            is_brave=True,
            cookie_probe=False,
            container_mounted=True,
        ))
        assert result == "HELLO"
        assert await bridge.cookie_probe() is False

    asyncio.run(scenario())

    assert bridge.user_agent == CHROME_UA
    assert bridge.is_brave is True
    container = bridge.find_container()
    assert container is not None
    assert container.has_class(WORKSPACE_HIDDEN_CLASS)


def test_container_mutations_are_relayed():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        await bridge.on_json_message(msg(type="CONTAINER_MOUNTED", classes=[WORKSPACE_HIDDEN_CLASS]))
        container = bridge.find_container()
        assert container is not None
        container.remove_class(WORKSPACE_HIDDEN_CLASS)
        container.add_class(WORKSPACE_VISIBLE_CLASS)
        container.set_style("pointer-events", "auto")

        await bridge.on_json_message(msg(type="CONTAINER_UNMOUNTED"))
        assert bridge.find_container() is None

    asyncio.run(scenario())

    sent = bridge.drain_outbound()
    assert types(sent) == ["CONTAINER_UPDATE"] * 3
    assert sent[0]["remove_class"] == WORKSPACE_HIDDEN_CLASS
    assert sent[1]["add_class"] == WORKSPACE_VISIBLE_CLASS
    assert sent[2]["style"] == {"pointer-events": "auto"}


def test_rejects_malformed_and_unknown_messages():
    bridge = WidgetBridge()

    async def scenario() -> None:
        assert await bridge.on_json_message("{not json") is None
        assert await bridge.on_json_message("[1, 2]") is None
        assert await bridge.on_json_message(msg(type="NOPE")) is None

    asyncio.run(scenario())


def test_initialize_resolves_on_widget_confirmation():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        init = asyncio.create_task(bridge.initialize(settings(domain_name="example.com")))
        sent = await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        assert sent["type"] == "SDK_INITIALIZE"
        assert sent["domain_name"] == "example.com"
        assert "api_token" not in sent

        await bridge.on_json_message(msg(type="SDK_INITIALIZED", workspace_created=True))
        await init

    asyncio.run(scenario())

    assert bridge.is_workspace_created() is True
    assert bridge.is_ready() is True


def test_initialize_raises_widget_error_message():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        init = asyncio.create_task(bridge.initialize(settings()))
        await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        await bridge.on_json_message(msg(type="SDK_ERROR", message="401 Unauthorized"))
        with pytest.raises(SdkInitializationError, match="401 Unauthorized"):
            await init

    asyncio.run(scenario())

    assert bridge.is_workspace_created() is False


def test_detach_fails_pending_initialize():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        init = asyncio.create_task(bridge.initialize(settings()))
        await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        bridge.detach()
        with pytest.raises(SdkNotReadyError):
            await init

    asyncio.run(scenario())


def test_cancelled_initialize_sends_abort():
    bridge = WidgetBridge()
    bridge.attach()

    async def scenario() -> None:
        init = asyncio.create_task(bridge.initialize(settings()))
        await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        init.cancel()
        await asyncio.gather(init, return_exceptions=True)

    asyncio.run(scenario())

    assert types(bridge.drain_outbound()) == ["SDK_ABORT"]


def test_initialize_requires_attached_widget():
    with pytest.raises(SdkNotReadyError):
        asyncio.run(WidgetBridge().initialize(settings()))


def test_login_logout_and_call_events_reach_callbacks():
    bridge = WidgetBridge()
    bridge.attach()
    seen: list[str] = []
    calls: list[dict] = []
    unsubscribe = bridge.on("incoming_call", calls.append)

    async def scenario() -> None:
        init = asyncio.create_task(bridge.initialize(settings(
            on_login=lambda: seen.append("login"),
            on_logout=lambda: seen.append("logout"),
        )))
        await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        await bridge.on_json_message(msg(type="SDK_INITIALIZED"))
        await init

        await bridge.on_json_message(msg(type="LOGIN"))
        assert await bridge.get_login_status() is True
        await bridge.on_json_message(msg(type="LOGOUT"))
        assert await bridge.get_login_status() is False

        await bridge.on_json_message(msg(type="CALL_EVENT", name="incoming_call", call={"call_id": "c1"}))
        unsubscribe()
        await bridge.on_json_message(msg(type="CALL_EVENT", name="incoming_call", call={"call_id": "c2"}))

    asyncio.run(scenario())

    assert seen == ["login", "logout"]
    assert calls == [{"call_id": "c1"}]


def test_call_actions_require_ready_widget():
    bridge = WidgetBridge()
    bridge.attach()

    with pytest.raises(SdkNotReadyError):
        asyncio.run(bridge.answer_call())
    with pytest.raises(SdkNotReadyError):
        asyncio.run(bridge.dial_number("+15551234"))


def test_controller_runs_through_the_widget_channel():
    controller = CallIntegrationController(
        config=make_config(),
        sleep=SleepRecorder(),
        controller_id="phone_test",
    )
    bridge = controller.bridge
    assert bridge is not None
    bridge.attach()

    async def scenario() -> None:
        await bridge.on_json_message(msg(
            type="HELLO",
            user_agent=CHROME_UA,
            cookie_probe=True,
            container_mounted=True,
        ))
        start = asyncio.create_task(controller.start())

        sent = await asyncio.wait_for(bridge.next_outbound(), timeout=1)
        assert sent["type"] == "SDK_INITIALIZE"
        await bridge.on_json_message(msg(type="SDK_INITIALIZED", workspace_created=True))
        await start
        assert controller.state.phase is Phase.NEEDS_LOGIN

        await bridge.on_json_message(msg(type="LOGIN"))
        await controller.runtime.wait_idle()
        await controller.shutdown()

    asyncio.run(scenario())

    assert controller.state.phase is Phase.LOGGED_IN
    sent_types = types(bridge.drain_outbound())
    assert "WORKSPACE_SHOW" in sent_types
    assert "SET_LOGIN_STATUS" in sent_types
