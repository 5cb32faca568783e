"""
Pytest configuration and fixtures.

Ensures fihris package can be imported from tests.
"""

import json
import sys
import os
from pathlib import Path

import pytest

# Add the repository root to Python path so tests can import fihris
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

# Also set PYTHONPATH environment variable
os.environ['PYTHONPATH'] = str(repo_root)

from fihris.generation.client import GenerationClient  # noqa: E402
from fihris.storage import IndexStore  # noqa: E402


SAMPLE_OUTLINE = (
    "1. مقدمة البحث\n"
    "1.1 خلفية الدراسة\n"
    "2. دراسات سابقة\n"
    "3. منهجية البحث\n"
    "4. نتائج البحث\n"
    "5. خاتمة"
)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload, ensure_ascii=False)
        self.text = text
        self.content = text.encode('utf-8')


class FakeSession:
    """Records requests and replays queued responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, response):
        self.responses.append(response)

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'timeout': timeout})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def sample_outline():
    return SAMPLE_OUTLINE


@pytest.fixture
def sample_payload():
    return {
        'index': SAMPLE_OUTLINE,
        'estimated_pages': {'مقدمة': '1-2', 'خاتمة': '1'},
        'academic_requirements': {
            'has_literature_review': True,
            'has_methodology': True,
            'has_citations': False,
        },
    }


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client(fake_session):
    return GenerationClient("http://localhost:8000/generate_index", session=fake_session)


@pytest.fixture
def store(tmp_path):
    return IndexStore(str(tmp_path / "state"))


@pytest.fixture
def make_response():
    return FakeResponse
