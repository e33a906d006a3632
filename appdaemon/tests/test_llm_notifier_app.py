"""
Unit tests for the LlmNotifier AppDaemon app.

These tests run without AppDaemon; hassapi is mocked and the provider
objects built from args are swapped for in-memory fakes after initialize().
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml


# Mock hassapi before importing the app (tests run without AppDaemon)
class _MockHass:
    def __init__(self, ad, config):
        pass


mock_hass = MagicMock()
mock_hass.Hass = _MockHass
sys.modules["hassapi"] = mock_hass


from llm_notifier import LlmNotifier  # noqa: E402
from llm_notifier_app.ha import HaMedia  # noqa: E402

APPS_YAML = Path(__file__).resolve().parents[1] / "apps" / "apps.yaml"

ENHANCED = {"title": "Richard at front door", "subtitle": "Person • Front door", "body": "Dropping off a package."}


class _SecretLoader(yaml.SafeLoader):
    pass


_SecretLoader.add_constructor("!secret", lambda loader, node: f"secret:{loader.construct_scalar(node)}")


class _FakeProvider:
    def __init__(self, content):
        self._content = content
        self.requests = []

    async def get_chat_completion(self, request):
        self.requests.append(request)
        return {"choices": [{"message": {"content": json.dumps(self._content)}}]}


def _make_app(args: dict) -> LlmNotifier:
    app = LlmNotifier(MagicMock(), MagicMock())
    app.args = args
    app.log = MagicMock()
    app.listen_event = AsyncMock(return_value="handle-1")
    app.call_service = AsyncMock(return_value=None)
    return app


def _args(**overrides) -> dict:
    args = {
        "notify_service": "notify.mobile_app_phone",
        "snapshot_mode": "cropped",
        "chat_completions": ["primary"],
        "providers": {"primary": {"provider": "openai", "api_key": "sk-test"}},
    }
    args.update(overrides)
    return args


class TestLlmNotifierApp:
    @pytest.mark.asyncio
    async def test_initialize_registers_event_listener(self):
        app = _make_app(_args())
        await app.initialize()

        app.listen_event.assert_awaited_once_with(app._on_send_notification_event, "llm_notifier/send_notification")
        assert list(app.providers) == ["primary"]
        assert app.pool.provider_ids == ("primary",)

    @pytest.mark.asyncio
    async def test_event_is_enhanced_and_sent_once(self):
        app = _make_app(_args())
        await app.initialize()
        fake = _FakeProvider(ENHANCED)
        app.providers["primary"] = fake

        await app._on_send_notification_event(
            "llm_notifier/send_notification",
            {
                "title": "Front Door",
                "subtitle": "Maybe: Richard",
                "body": "Person detected",
                "media": "https://frigate.local/crop.jpg",
                "push_data": {"tag": "front"},
                "unrelated": "dropped",
            },
            {},
        )

        assert len(fake.requests) == 1
        app.call_service.assert_awaited_once_with(
            "notify/mobile_app_phone",
            title=ENHANCED["title"],
            message=ENHANCED["body"],
            data={"tag": "front", "subtitle": ENHANCED["subtitle"], "image": "https://frigate.local/crop.jpg"},
        )
        assert app.stats.with_snapshot == 1

    @pytest.mark.asyncio
    async def test_event_without_media_passes_through(self):
        app = _make_app(_args())
        await app.initialize()
        fake = _FakeProvider(ENHANCED)
        app.providers["primary"] = fake

        await app._on_send_notification_event("e", {"title": "Garage", "body": "Door open"}, {})

        assert fake.requests == []
        app.call_service.assert_awaited_once_with("notify/mobile_app_phone", title="Garage", message="Door open")
        assert app.stats.without_snapshot == 1

    @pytest.mark.asyncio
    async def test_provider_failure_sends_original(self):
        app = _make_app(_args())
        await app.initialize()
        broken = MagicMock()
        broken.get_chat_completion = AsyncMock(side_effect=RuntimeError("quota"))
        app.providers["primary"] = broken

        await app.send_notification(
            "Front Door", {"subtitle": "Maybe: Richard", "body": "Person detected"}, "https://x/crop.jpg"
        )

        app.call_service.assert_awaited_once_with(
            "notify/mobile_app_phone",
            title="Front Door",
            message="Person detected",
            data={"subtitle": "Maybe: Richard", "image": "https://x/crop.jpg"},
        )

    @pytest.mark.asyncio
    async def test_camera_entity_media_is_fetched_through_ha(self, make_jpeg):
        app = _make_app(_args())
        await app.initialize()
        fake = _FakeProvider(ENHANCED)
        app.providers["primary"] = fake
        app.dispatcher._enhancer._assembler._media_resolver.to_jpeg = AsyncMock(return_value=make_jpeg(64, 48))

        await app.send_notification("Front Door", {"body": "Person"}, "camera.front_door")

        image_parts = [p for p in fake.requests[0]["messages"][1]["content"] if p["type"] == "image_url"]
        assert image_parts[0]["image_url"]["url"].startswith("data:image/jpeg;base64,")
        sent = app.call_service.await_args.kwargs
        assert sent["data"]["image"] == HaMedia("/api/camera_proxy/camera.front_door").web_path

    @pytest.mark.asyncio
    async def test_non_dict_event_payload_ignored(self):
        app = _make_app(_args())
        await app.initialize()
        await app._on_send_notification_event("e", None, {})
        app.call_service.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_notify_service_fails_initialize(self):
        app = _make_app(_args(notify_service=""))
        with pytest.raises(ValueError):
            await app.initialize()

    @pytest.mark.asyncio
    async def test_unknown_provider_and_mode_are_warned(self):
        app = _make_app(_args(snapshot_mode="panorama", chat_completions=["ghost"]))
        await app.initialize()

        assert app.settings.snapshot_mode == "cropped"
        warnings = [c.args[0] for c in app.log.call_args_list if c.kwargs.get("level") == "WARNING"]
        assert any("panorama" in w for w in warnings)
        assert any("ghost" in w for w in warnings)

    @pytest.mark.asyncio
    async def test_terminate_logs_stats(self):
        app = _make_app(_args())
        await app.initialize()
        await app.send_notification("Garage")
        await app.terminate()
        assert "Total: 1 (With: 0, Without: 1)" in app.log.call_args_list[-1].args[0]


def test_shipped_apps_yaml_parses_into_settings_and_providers():
    from ai_providers.registry import chat_providers_from_appdaemon_args
    from llm_notifier_app.config import settings_from_appdaemon_args

    apps = yaml.load(APPS_YAML.read_text(encoding="utf-8"), Loader=_SecretLoader)
    args = apps["llm_notifier"]
    assert args["module"] == "llm_notifier"
    assert args["class"] == "LlmNotifier"

    settings = settings_from_appdaemon_args(args)
    providers = chat_providers_from_appdaemon_args(args)

    assert settings.snapshot_mode == "both"
    assert settings.ha_token == "secret:token"
    assert set(settings.chat_completions) <= set(providers)
    assert set(settings.detectors) == {"front_door", "driveway"}
