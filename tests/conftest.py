"""Shared fixtures"""
import dataclasses

import httpx
import pytest

from docchat import rate_limit
from docchat.config import Settings
from docchat.conversation_store import ConversationStore
from docchat.gemini_client import GeminiClient


class RecordingSleep:
    """Stands in for asyncio.sleep; records requested delays without waiting"""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def clear_rate_limit_buckets():
    rate_limit.reset()
    yield
    rate_limit.reset()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        gemini_api_key="test-api-key",
        gemini_api_url="https://gemini.test/v1beta/models/test-model:generateContent",
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def store():
    return ConversationStore(max_history=50)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def gemini_reply():
    """Build a Gemini-style success body"""

    def _reply(text="hello", finish_reason="STOP", usage=None):
        body = {
            "candidates": [
                {
                    "content": {"role": "model", "parts": [{"text": text}]},
                    "finishReason": finish_reason,
                }
            ]
        }
        if usage is not None:
            body["usageMetadata"] = usage
        return body

    return _reply


@pytest.fixture
def make_client(settings, sleeper):
    """Create a GeminiClient wired to an httpx.MockTransport handler"""

    def _make(handler, **overrides):
        s = dataclasses.replace(settings, **overrides) if overrides else settings
        return GeminiClient(s, transport=httpx.MockTransport(handler), sleep=sleeper)

    return _make


@pytest.fixture
def looping_pdf():
    """A PDF whose page tree lists itself as its own child"""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [2 0 R] /Count 1 >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)
