"""Tests for notification dispatch, email delivery, embeddings and the cache."""

import asyncio

import pytest
from fastapi import BackgroundTasks

from marketplace import email_service
from marketplace.cache import Cache
from marketplace.email_service import ResendEmailSender, render_message_html
from marketplace.services import embedding_service
from marketplace.services.embedding_service import (
    HuggingFaceEmbeddingProvider,
    _flatten_vector,
    build_embedding_text,
    cosine_similarity,
)
from marketplace.services.notification_service import Notification, NotificationDispatcher, deliver

from tests.conftest import FakeNotificationSender, run_now


class ExplodingSender:
    def send(self, to, subject, message):
        raise RuntimeError("smtp down")


def note(to="a@test.dev"):
    return Notification(to=to, subject="Hi", message="Hello")


class TestNotificationDispatcher:
    def test_delivery_is_scheduled_not_sent(self):
        sender = FakeNotificationSender()
        tasks = BackgroundTasks()
        dispatcher = NotificationDispatcher(sender, tasks.add_task)

        assert dispatcher.dispatch([note(), note("b@test.dev")]) == 2
        assert sender.sent == []

        asyncio.run(tasks())
        assert sender.recipients() == {"a@test.dev", "b@test.dev"}

    def test_blank_recipients_skipped(self):
        sender = FakeNotificationSender()
        dispatcher = NotificationDispatcher(sender, run_now)
        assert dispatcher.dispatch([note(""), note()]) == 1
        assert len(sender.sent) == 1

    def test_no_sender_configured(self):
        scheduled = []
        dispatcher = NotificationDispatcher(None, lambda *args: scheduled.append(args))
        assert dispatcher.dispatch([note()]) == 0
        assert scheduled == []


class TestDeliver:
    def test_reports_undelivered(self):
        assert deliver(FakeNotificationSender(succeed=False), note()) is False

    def test_sender_exceptions_are_contained(self):
        assert deliver(ExplodingSender(), note()) is False

    def test_success(self):
        sender = FakeNotificationSender()
        assert deliver(sender, note()) is True
        assert sender.sent == [{"to": "a@test.dev", "subject": "Hi", "message": "Hello"}]


class TestResendEmailSender:
    def test_without_api_key_nothing_is_sent(self):
        assert ResendEmailSender(None, "noreply@test.dev").send("a@test.dev", "Hi", "Hello") is False

    def test_sends_through_resend(self, monkeypatch):
        calls = []
        monkeypatch.setattr(email_service.resend.Emails, "send", lambda data: calls.append(data) or {"id": "1"})
        assert ResendEmailSender("re_test", "noreply@test.dev").send("a@test.dev", "Hi", "Hello") is True
        assert calls[0]["to"] == ["a@test.dev"]
        assert calls[0]["text"] == "Hello"

    def test_resend_failure_returns_false(self, monkeypatch):
        def boom(data):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(email_service.resend.Emails, "send", boom)
        assert ResendEmailSender("re_test", "noreply@test.dev").send("a@test.dev", "Hi", "Hello") is False

    def test_html_is_escaped(self):
        html = render_message_html("<b>", "line <1>\nline 2")
        assert "&lt;b&gt;" in html
        assert html.count("<p") == 2


class TestEmbeddings:
    def test_without_token_returns_empty(self):
        assert HuggingFaceEmbeddingProvider("http://hf.invalid", None).embed("deep clean") == []

    def test_transport_error_returns_empty(self, monkeypatch):
        class BrokenClient:
            def __init__(self, *args, **kwargs):
                pass

            def __enter__(self):
                raise embedding_service.httpx.ConnectError("unreachable")

            def __exit__(self, *exc):
                return False

        monkeypatch.setattr(embedding_service.httpx, "Client", BrokenClient)
        assert HuggingFaceEmbeddingProvider("http://hf.invalid", "hf_x").embed("deep clean") == []

    def test_flatten_nested_vector(self):
        assert _flatten_vector([[1, 2.5]]) == [1.0, 2.5]
        assert _flatten_vector({"error": "loading"}) == []

    def test_embedding_text(self):
        assert build_embedding_text("Deep Clean", " Home ", "Cleaning", ["a", "b"]) == "Deep Clean Home Cleaning a b"

    def test_cosine_similarity(self):
        assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([1, 0], []) == 0.0
        assert cosine_similarity([0, 0], [1, 1]) == 0.0


class TestCacheFailOpen:
    def test_without_redis_everything_misses(self):
        cache = Cache(redis_url=None)
        assert cache.set("k", [1]) is False
        assert cache.get("k") is None
        assert cache.delete("k") is False

    def test_unreachable_redis_misses(self):
        cache = Cache(redis_url="redis://127.0.0.1:1/0")
        assert cache.get("k") is None
