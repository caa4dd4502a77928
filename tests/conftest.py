import os

# 测试中不连接真实服务
os.environ["PARTS_STORE"] = "memory"
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = ""

import pytest

from stockvoice.data.repository import InMemoryPartsRepository
from stockvoice.service import CommandService


class FakeMessage:
    def __init__(self, content):
        self.content = content


class FakeLLM:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def invoke(self, instruction, *_args, **_kwargs):
        self.calls.append(instruction)
        return FakeMessage(self.response)


class FakeTranscriber:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def transcribe(self, audio_path, language):
        self.calls.append((audio_path, language, audio_path.exists()))
        return self.text


@pytest.fixture
def repo():
    return InMemoryPartsRepository()


@pytest.fixture
def make_service(repo):
    def _make(response='{"changes": []}', transcript="", llm=True):
        fake_llm = FakeLLM(response) if llm else None
        return CommandService(repo, llm=fake_llm, transcriber=FakeTranscriber(transcript))

    return _make
