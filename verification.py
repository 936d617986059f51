# tabs preferred
import os, re, ssl, time, smtplib, logging
from datetime import datetime, timezone
from email.mime.text import MIMEText

from browser import StepError

log = logging.getLogger("verification")

CODE_RE = re.compile(r"(?<!\d)(\d{6})(?!\d)")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

class VerificationTimeout(StepError):
	def __init__(self, message: str):
		super().__init__("verification", message)

def code_folder(site: str) -> str:
	return f"verification/{site}/"

def extract_code(name: str):
	m = CODE_RE.search(name.rsplit("/", 1)[-1])
	return m.group(1) if m else None

# ── Email request ─────────────────────────────────────────────────────────────
def _smtp_config(req_id: str = "-"):
	port = os.getenv("SMTP_PORT", "587").strip() or "587"
	try:
		port = int(port)
	except ValueError:
		log.error(f"[{req_id}] SMTP_PORT is not a number: {port!r}")
		return None
	cfg = {
		"host": os.getenv("SMTP_HOST", "").strip(),
		"port": port,
		"user": os.getenv("SMTP_USER", "").strip(),
		"password": os.getenv("SMTP_PASS", "").strip(),
		"to": os.getenv("SMTP_TO", "").strip(),
	}
	cfg["from"] = os.getenv("SMTP_FROM", cfg["user"]).strip()
	if not all(cfg.values()):
		return None
	return cfg

def request_code(site: str, req_id: str = "-") -> bool:
	"""
	Ask the operator to relay the emailed code into the polling folder.
	Returns False when SMTP is not configured or the send failed.
	"""
	cfg = _smtp_config(req_id)
	if cfg is None:
		log.info(f"[{req_id}] SMTP not configured, skipping verification email")
		return False

	folder = code_folder(site)
	body = (
		f"A sign-in for {site} is waiting for a verification code.\n\n"
		f"Upload an empty file whose name contains the 6-digit code to the "
		f"'{folder}' folder of the storage container.\n\nRequest-ID: {req_id}\n"
	)
	msg = MIMEText(body, "plain", "utf-8")
	msg["Subject"] = f"Verification code needed: {site}"
	msg["From"] = cfg["from"]
	msg["To"] = cfg["to"]

	try:
		with smtplib.SMTP(cfg["host"], cfg["port"], timeout=30) as server:
			server.ehlo()
			server.starttls(context=ssl.create_default_context())
			server.ehlo()
			server.login(cfg["user"], cfg["password"])
			server.sendmail(cfg["from"], [cfg["to"]], msg.as_string())
		log.info(f"[{req_id}] verification email sent to {cfg['to']}")
		return True
	except (smtplib.SMTPException, OSError) as e:
		log.error(f"[{req_id}] verification email failed: {e}")
		return False

# ── Polling ───────────────────────────────────────────────────────────────────
def discard_pending(store, site: str, req_id: str = "-") -> int:
	n = 0
	for name, _ in store.list_names(code_folder(site)):
		if extract_code(name):
			store.delete(name)
			n += 1
	if n:
		log.info(f"[{req_id}] discarded {n} stale verification blob(s)")
	return n

def wait_for_code(store, site: str, req_id: str = "-", timeout_s: float = None, poll_s: float = None) -> str:
	if timeout_s is None:
		timeout_s = float(os.getenv("VERIFICATION_TIMEOUT_SECONDS", "180"))
	if poll_s is None:
		poll_s = float(os.getenv("VERIFICATION_POLL_SECONDS", "5"))

	folder = code_folder(site)
	deadline = time.monotonic() + timeout_s
	log.info(f"[{req_id}] polling {folder} for a verification code (timeout {timeout_s:.0f}s)")
	while True:
		found = []
		for name, lm in store.list_names(folder):
			code = extract_code(name)
			if code:
				found.append((lm or EPOCH, name, code))
		if found:
			_, name, code = max(found, key=lambda t: t[0])
			store.delete(name)
			log.info(f"[{req_id}] verification code consumed from {name}")
			return code
		if time.monotonic() >= deadline:
			raise VerificationTimeout(f"No verification code arrived in {folder} within {timeout_s:.0f}s")
		time.sleep(poll_s)
