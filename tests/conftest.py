"""
Test Configuration and Fixtures
"""
import os
from types import SimpleNamespace

import pytest

os.environ.setdefault('FLASK_ENV', 'testing')

from marketmetric import create_app, db
from marketmetric.services.storage_service import LocalStorage


class FakeCompletions:
    """Stands in for client.chat.completions of the OpenAI SDK"""

    def __init__(self):
        self.content = ""
        self.responder = None
        self.error = None
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = self.responder(kwargs) if self.responder else self.content
        message = SimpleNamespace(role="assistant", content=content)
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


class FakeLLMClient:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


def make_pdf(text: str) -> bytes:
    """Build a one-page PDF whose content stream draws ``text``."""
    content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1") if text else b""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, obj in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + obj + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


def yes_answers(*yes_numbers, total=10) -> str:
    return "\n".join(f"{i}. {'yes' if i in yes_numbers else 'no'}" for i in range(1, total + 1))


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing"""
    app = create_app('testing')
    app.config['TESTING'] = True
    app.config['USE_MOCK_DATA'] = False
    app.config['MAX_TOKENS'] = 0
    app.extensions['storage'] = LocalStorage(str(tmp_path / 'storage'))
    app.extensions['llm_client'] = FakeLLMClient()
    app.extensions['llm_error'] = None

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def llm(app):
    """The fake completions endpoint wired into the app"""
    return app.extensions['llm_client'].completions


@pytest.fixture(scope='function')
def storage(app):
    return app.extensions['storage']


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def answers():
    return yes_answers
