from __future__ import annotations

import os
from pathlib import Path

import pytest

from ai_providers.registry import chat_providers_from_appdaemon_args
from llm_notifier_app.config import NotifierSettings
from llm_notifier_app.dispatcher import NotificationDispatcher, NotificationEnhancer
from llm_notifier_app.invoker import InferenceInvoker
from llm_notifier_app.models import ImageAsset
from llm_notifier_app.pool import ProviderPool
from llm_notifier_app.snapshots import SnapshotAssembler


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


class _CapturingNotifier:
    def __init__(self):
        self.calls = []

    async def send_notification(self, title, options=None, media=None, icon=None):
        self.calls.append((title, options, media, icon))


@pytest.mark.skipif(
    _env("RUN_LLM_NOTIFIER_INTEGRATION") != "1" or not _env("AI_PROVIDER_KEY"),
    reason="requires RUN_LLM_NOTIFIER_INTEGRATION=1 and AI_PROVIDER_KEY",
)
@pytest.mark.asyncio
async def test_real_provider_rewrites_notification_smoke(make_jpeg):
    # LLM_NOTIFIER_TEST_IMAGE may point at a real camera crop; otherwise a generated frame is used.
    image_path = _env("LLM_NOTIFIER_TEST_IMAGE")
    data = Path(image_path).read_bytes() if image_path else make_jpeg(320, 240, (200, 40, 40))
    media = ImageAsset(data=data, role="cropped").data_url()

    providers = chat_providers_from_appdaemon_args(
        {
            "providers": {
                "real": {
                    "provider": _env("LLM_NOTIFIER_PROVIDER") or "openai",
                    "api_key": _env("AI_PROVIDER_KEY"),
                    "base_url": _env("LLM_NOTIFIER_BASE_URL") or None,
                    "model": _env("LLM_NOTIFIER_MODEL") or "gpt-4o-mini",
                }
            }
        }
    )
    settings = NotifierSettings(notify_service="notify.test", chat_completions=("real",), llm_timeout_s=60)
    logs = []

    def log(msg, level="INFO"):
        logs.append((level, msg))

    notifier = _CapturingNotifier()
    enhancer = NotificationEnhancer(
        settings,
        SnapshotAssembler(None, {}, log=log),
        ProviderPool(settings.chat_completions),
        InferenceInvoker(providers, log=log),
        log=log,
    )
    dispatcher = NotificationDispatcher(notifier, enhancer, settings, log=log)

    await dispatcher.send_notification(
        "Front Door", {"subtitle": "Maybe: Richard", "body": "Person detected"}, media
    )

    assert len(notifier.calls) == 1
    title, options, _, _ = notifier.calls[0]
    assert not any(level == "WARNING" for level, _ in logs), logs
    assert title and options["subtitle"] and options["body"]
