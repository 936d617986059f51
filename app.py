# tabs preferred
import os, uuid, logging, traceback
from flask import Flask, request, make_response
from werkzeug.middleware.proxy_fix import ProxyFix

from browser import ConfigError, StepError
from blobstore import ArtifactStore
from esuite import run_esuite
from lcvista import run_lcvista
from qbo import run_qbo
from zeal import run_zeal_document
from smoke import run_smoke

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
	level=getattr(logging, LOG_LEVEL, logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s %(message)s",
	force=True,  # <<— override the host's handlers
)
log = logging.getLogger("app")

DEBUG_RESPONSES = os.getenv("DEBUG", "0") == "1"

app = Flask(__name__)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

def _reply(req_id, body, status=200, content_type="text/plain"):
	resp = make_response(body, status)
	resp.headers["Content-Type"] = f"{content_type}; charset=utf-8"
	resp.headers["X-Request-ID"] = req_id
	return resp

def _request_id():
	return request.headers.get("X-Request-ID") or str(uuid.uuid4())

def _creds(user_var, pass_var):
	return (os.getenv(user_var) or "").strip(), (os.getenv(pass_var) or "").strip()

def _failure(req_id, e, prefix="An error occurred during processing"):
	log.error(f"[{req_id}] {prefix.lower()}: {e}")
	log.debug("".join(traceback.format_exc()))
	if isinstance(e, StepError):
		return _reply(req_id, f"{prefix} at step {e.step}: {e}", 500)
	if isinstance(e, ConfigError) and not DEBUG_RESPONSES:
		return _reply(req_id, f"{prefix}: storage is not configured. Request-ID={req_id}", 500)
	return _reply(req_id, f"{prefix}: {e}", 500)

@app.get("/healthz")
def healthz():
	return "ok", 200

@app.post("/eSuite")
def esuite():
	req_id = _request_id()
	log.info(f"[{req_id}] function 'eSuite' started")

	username, password = _creds("EMPIRESUITE_USER", "EMPIRESUITE_PW")
	if not username or not password:
		log.warning(f"[{req_id}] missing creds")
		return _reply(req_id, "Username or password environment variable is missing", 400)

	report = request.get_json(silent=True) or {}
	try:
		store = ArtifactStore.from_env()
	except ConfigError as e:
		return _failure(req_id, e)

	html, blobs = run_esuite(
		username=username,
		password=password,
		store=store,
		req_id=req_id,
		report=report if isinstance(report, dict) else None,
	)
	log.info(f"[{req_id}] eSuite done blobs={len(blobs)}")
	return _reply(req_id, html, 200, "text/html")

@app.post("/lcVista")
def lcvista():
	req_id = _request_id()
	log.info(f"[{req_id}] function 'lcVista' started")

	username, password = _creds("LCVISTA_USERNAME", "LCVISTA_PASSWORD")
	if not username or not password:
		log.warning(f"[{req_id}] missing creds")
		return _reply(req_id, "Username or password environment variable is missing", 400)

	body = request.get_json(silent=True)
	body = body if isinstance(body, dict) else {}
	jurisdiction = body.get("jurisdiction")
	if jurisdiction in (None, ""):
		jurisdiction = os.getenv("LCVISTA_JURISDICTION") or None
	try:
		message, blobs = run_lcvista(
			username=username,
			password=password,
			store=ArtifactStore.from_env(),
			req_id=req_id,
			report=body.get("reportName"),
			jurisdiction=None if jurisdiction is None else str(jurisdiction),
		)
		log.info(f"[{req_id}] lcVista done blobs={len(blobs)}")
		return _reply(req_id, message)
	except Exception as e:
		return _failure(req_id, e)

@app.post("/qbo")
def qbo():
	req_id = _request_id()
	log.info(f"[{req_id}] function 'qbo' started")

	username, password = _creds("QBO_USER", "QBO_PASSWORD")
	if not username or not password:
		log.warning(f"[{req_id}] missing creds")
		return _reply(req_id, "Username or password environment variable is missing", 400)

	try:
		html, blobs = run_qbo(username=username, password=password, store=ArtifactStore.from_env(), req_id=req_id)
		log.info(f"[{req_id}] qbo paused at SMS challenge blobs={len(blobs)}")
		# sign-in is not finished until the text code is entered
		return _reply(req_id, html, 202, "text/html")
	except Exception as e:
		return _failure(req_id, e)

@app.post("/zealGetDocument")
def zeal_get_document():
	req_id = _request_id()
	log.info(f"[{req_id}] function 'zealGetDocument' started")

	body = request.get_json(force=True, silent=True)
	if not isinstance(body, dict):
		log.warning(f"[{req_id}] invalid JSON body")
		return _reply(req_id, "Invalid JSON in request body.", 400)

	url, document_name = body.get("path"), body.get("documentName")
	log.info(f"[{req_id}] document to save as: {document_name}")
	if not url or not document_name:
		log.warning(f"[{req_id}] no path or documentName provided")
		return _reply(req_id, "Error: No path or documentName provided in the request body.", 400)

	try:
		blob = run_zeal_document(url=url, document_name=document_name, store=ArtifactStore.from_env(), req_id=req_id)
		return _reply(req_id, f"Document downloaded and uploaded as {blob} successfully.")
	except Exception as e:
		return _failure(req_id, e)

@app.post("/rpaTesting")
def rpa_testing():
	req_id = _request_id()
	log.info(f"[{req_id}] function 'rpaTesting' started")
	try:
		store = ArtifactStore.from_env()
	except ConfigError:
		store = None
		log.info(f"[{req_id}] storage not configured, screenshot kept in memory only")

	try:
		run_smoke(store=store, req_id=req_id)
		return _reply(req_id, "Browser script executed successfully.")
	except Exception as e:
		return _failure(req_id, e, prefix="Error during script execution")
