"""
AppDaemon module shim: apps.yaml points `module: llm_notifier` here, the app
itself lives in the llm_notifier_app package.
"""

from llm_notifier_app.manager import LlmNotifier  # noqa: F401
