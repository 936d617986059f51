# tabs preferred
import shutil, time
from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from playwright.sync_api import TimeoutError as PWTimeout


class FakeStore:
	"""In-memory stand-in for blobstore.ArtifactStore."""

	def __init__(self):
		self.blobs = {}
		self.types = {}
		self.modified = {}
		self.deleted = []

	def put(self, name, data=b"", when=None):
		self.blobs[name] = data
		self.modified[name] = when or datetime.now(timezone.utc)

	def upload_bytes(self, name, data, content_type="application/octet-stream"):
		self.put(name, data)
		self.types[name] = content_type
		return name

	def upload_text(self, name, text, content_type="text/plain"):
		return self.upload_bytes(name, (text or "").encode("utf-8"), content_type)

	def upload_file(self, name, path, content_type="application/octet-stream"):
		with open(path, "rb") as f:
			return self.upload_bytes(name, f.read(), content_type)

	def list_names(self, prefix):
		return [(n, self.modified[n]) for n in sorted(self.blobs) if n.startswith(prefix)]

	def delete(self, name):
		del self.blobs[name]
		self.deleted.append(name)


class FakeDownload:
	def __init__(self, src, suggested_filename):
		self.src = src
		self.suggested_filename = suggested_filename

	def save_as(self, path):
		shutil.copy(self.src, path)


class _DownloadInfo:
	value = None


class FakeResponse:
	def __init__(self, body=b"", headers=None, status=200):
		self._body = body
		self.headers = headers or {}
		self.status = status
		self.ok = 200 <= status < 300

	def body(self):
		return self._body


class FakeRequest:
	"""page.context.request: answers with page.api_response, or raises it."""

	def __init__(self, page):
		self.page = page

	def get(self, url):
		self.page.actions.append(("request", url))
		if isinstance(self.page.api_response, Exception):
			raise self.page.api_response
		return self.page.api_response


class FakeContext:
	def __init__(self, page):
		self.request = FakeRequest(page)


class FakeLocator:
	def __init__(self, n):
		self.n = n

	def count(self):
		return self.n


class _Actions:
	"""Shared recording surface for a page and its frames."""

	def _record(self, *action):
		self.page.actions.append(action)
		err = self.page.fail_on.get(action[1] if len(action) > 1 else None)
		if err is not None:
			raise err

	def fill(self, selector, value):
		self._record("fill", selector, value)

	def click(self, selector):
		self._record("click", selector)

	def wait_for_selector(self, selector, timeout=None):
		if selector in self.page.missing:
			raise PWTimeout(f"waiting for {selector}")
		self._record("wait", selector)


class FakeFrame(_Actions):
	def __init__(self, page, name, children=()):
		self.page = page
		self.name = name
		self.child_frames = list(children)


class FakePage(_Actions):
	def __init__(self, html="<html><body>ok</body></html>"):
		self.page = self
		self.html = html
		self.actions = []
		self.fail_on = {}
		self.missing = set()
		self.present = set()
		self.download = None
		self.api_response = None
		self.context = FakeContext(self)
		self.main_frame = FakeFrame(self, "")

	@property
	def frames(self):
		out = []
		stack = [self.main_frame]
		while stack:
			fr = stack.pop(0)
			out.append(fr)
			stack.extend(fr.child_frames)
		return out

	def goto(self, url, wait_until=None):
		self._record("goto", url)

	def wait_for_load_state(self, state="load", timeout=None):
		pass

	def screenshot(self, full_page=False):
		return b"\x89PNG-fake"

	def content(self):
		return self.html

	def locator(self, selector):
		return FakeLocator(1 if selector in self.present else 0)

	@contextmanager
	def expect_download(self, timeout=None):
		info = _DownloadInfo()
		yield info
		info.value = self.download


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
	monkeypatch.setattr(time, "sleep", lambda s: None)


@pytest.fixture
def store():
	return FakeStore()


@pytest.fixture
def page():
	return FakePage()


@pytest.fixture
def fake_browser(monkeypatch, page):
	"""Patch `open_browser` in the given flow module to yield the fake page."""

	def install(module):
		@contextmanager
		def _open(*, req_id="-", viewport=None):
			yield page

		monkeypatch.setattr(module, "open_browser", _open)
		return page

	return install
