# tabs preferred
import smtplib
from datetime import datetime, timezone

import pytest

import verification
from verification import extract_code, discard_pending, wait_for_code, request_code, VerificationTimeout

SITE = "https___bmssu_lcvista_com_"
FOLDER = f"verification/{SITE}/"


def test_extract_code_reads_six_digits_from_basename():
	assert extract_code(f"{FOLDER}code_482913.txt") == "482913"
	assert extract_code(f"{FOLDER}482913") == "482913"
	assert extract_code(f"{FOLDER}code_1234567.txt") is None
	assert extract_code(f"{FOLDER}readme.txt") is None
	assert extract_code("verification/123456/readme.txt") is None


def test_wait_for_code_consumes_newest_and_deletes_it(store):
	store.put(f"{FOLDER}code_111111.txt", when=datetime(2024, 1, 1, tzinfo=timezone.utc))
	store.put(f"{FOLDER}code_222222.txt", when=datetime(2024, 1, 2, tzinfo=timezone.utc))
	store.put(f"{FOLDER}notes.txt")

	assert wait_for_code(store, SITE, timeout_s=0, poll_s=0) == "222222"
	assert store.deleted == [f"{FOLDER}code_222222.txt"]
	assert f"{FOLDER}notes.txt" in store.blobs


def test_wait_for_code_polls_until_a_code_lands(store):
	calls = []
	real_list = store.list_names

	def list_names(prefix):
		calls.append(prefix)
		if len(calls) == 3:
			store.put(f"{FOLDER}654321.txt")
		return real_list(prefix)

	store.list_names = list_names
	assert wait_for_code(store, SITE, timeout_s=60, poll_s=0) == "654321"
	assert len(calls) == 3


def test_wait_for_code_times_out_as_a_verification_step_error(store):
	with pytest.raises(VerificationTimeout) as exc:
		wait_for_code(store, SITE, timeout_s=0, poll_s=0)
	assert exc.value.step == "verification"


def test_discard_pending_removes_only_code_blobs(store):
	store.put(f"{FOLDER}code_111111.txt")
	store.put(f"{FOLDER}keep.txt")
	store.put("verification/other/code_222222.txt")

	assert discard_pending(store, SITE) == 1
	assert sorted(store.blobs) == [f"{FOLDER}keep.txt", "verification/other/code_222222.txt"]


def test_request_code_skipped_without_smtp(monkeypatch):
	for k in ("SMTP_HOST", "SMTP_USER", "SMTP_PASS", "SMTP_TO", "SMTP_FROM"):
		monkeypatch.delenv(k, raising=False)
	assert request_code(SITE) is False


class _FakeSMTP:
	sent = []

	def __init__(self, host, port, timeout=None):
		self.host, self.port = host, port

	def __enter__(self):
		return self

	def __exit__(self, *exc):
		return False

	def ehlo(self):
		pass

	def starttls(self, context=None):
		pass

	def login(self, user, password):
		self.user = user

	def sendmail(self, sender, to, body):
		_FakeSMTP.sent.append((self.host, self.port, sender, to, body))


def test_request_code_sends_mail_naming_the_folder(monkeypatch):
	monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
	monkeypatch.setenv("SMTP_PORT", "2525")
	monkeypatch.setenv("SMTP_USER", "robot@example.com")
	monkeypatch.setenv("SMTP_PASS", "secret")
	monkeypatch.setenv("SMTP_TO", "ops@example.com")
	monkeypatch.delenv("SMTP_FROM", raising=False)
	monkeypatch.setattr(verification.smtplib, "SMTP", _FakeSMTP)
	_FakeSMTP.sent.clear()

	assert request_code(SITE, "req-1") is True

	host, port, sender, to, body = _FakeSMTP.sent[0]
	assert (host, port, sender, to) == ("smtp.example.com", 2525, "robot@example.com", ["ops@example.com"])
	assert "Verification code needed" in body


def _smtp_env(monkeypatch, port="587"):
	monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
	monkeypatch.setenv("SMTP_PORT", port)
	monkeypatch.setenv("SMTP_USER", "robot@example.com")
	monkeypatch.setenv("SMTP_PASS", "secret")
	monkeypatch.setenv("SMTP_TO", "ops@example.com")
	monkeypatch.delenv("SMTP_FROM", raising=False)


def test_request_code_rejects_a_malformed_port(monkeypatch):
	_smtp_env(monkeypatch, port="587 # tls")
	monkeypatch.setattr(verification.smtplib, "SMTP", _FakeSMTP)
	_FakeSMTP.sent.clear()

	assert request_code(SITE, "req-1") is False
	assert _FakeSMTP.sent == []


class _RejectingSMTP(_FakeSMTP):
	def login(self, user, password):
		raise smtplib.SMTPAuthenticationError(535, b"5.7.8 bad credentials")


def test_request_code_reports_a_failed_send(monkeypatch):
	_smtp_env(monkeypatch)
	monkeypatch.setattr(verification.smtplib, "SMTP", _RejectingSMTP)

	assert request_code(SITE, "req-1") is False
