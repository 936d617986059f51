# tabs preferred
import os, logging, mimetypes, tempfile
from playwright.sync_api import Error as PWError
from browser import open_browser, pause, StepError
from blobstore import safe_name

log = logging.getLogger("zeal")

DEFAULT_EXT = "pdf"
DOWNLOAD_MS = 60_000

# checked before mimetypes, whose table differs from host to host
KNOWN_TYPES = {
	"application/pdf": "pdf",
	"application/msword": "doc",
	"application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
	"application/vnd.ms-excel": "xls",
	"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
	"text/csv": "csv",
	"text/html": "html",
	"text/plain": "txt",
}
CONTENT_TYPES = {ext: mime for mime, ext in KNOWN_TYPES.items()}

def extension_for(content_type: str) -> str:
	mime = (content_type or "").split(";", 1)[0].strip().lower()
	if mime in KNOWN_TYPES:
		return KNOWN_TYPES[mime]
	ext = mimetypes.guess_extension(mime) if mime else None
	return ext.lstrip(".") if ext else DEFAULT_EXT

def content_type_for(ext: str) -> str:
	return CONTENT_TYPES.get(ext) or mimetypes.types_map.get(f".{ext}", "application/octet-stream")

def _open(page, url, req_id):
	# headless chromium turns document links (PDF, attachments) into downloads
	try:
		page.goto(url)
	except PWError as e:
		if "Download is starting" not in str(e):
			raise
		log.info(f"[{req_id}] document link started a download")

def _fetch_with_session(page, url, workdir, name, req_id):
	"""Re-request the document with the page's cookies. Returns (path, ext) or None."""
	try:
		resp = page.context.request.get(url)
	except PWError as e:
		log.warning(f"[{req_id}] session request failed: {e}")
		return None
	if not resp.ok:
		log.warning(f"[{req_id}] session request answered {resp.status}")
		return None
	ext = extension_for(resp.headers.get("content-type"))
	path = os.path.join(workdir, f"{name}.{ext}")
	with open(path, "wb") as f:
		f.write(resp.body())
	return path, ext

def _fetch_as_download(page, url, workdir, name, req_id):
	with page.expect_download(timeout=DOWNLOAD_MS) as dl_info:
		_open(page, url, req_id)
	download = dl_info.value
	ext = os.path.splitext(download.suggested_filename or "")[1].lstrip(".").lower() or DEFAULT_EXT
	path = os.path.join(workdir, f"{name}.{ext}")
	download.save_as(path)
	return path, ext

def run_zeal_document(*, url: str, document_name: str, store, req_id: str) -> str:
	"""
	Opens a Zeal document link so the session is established, lets the viewer
	settle, then fetches the raw document. Returns the blob name it was stored
	under.
	"""
	settle_ms = int(os.getenv("ZEAL_SETTLE_MS", "30000"))
	name = safe_name(document_name)
	step = "init"
	try:
		with open_browser(req_id=req_id) as page, tempfile.TemporaryDirectory(prefix="zeal_") as workdir:
			step = "goto_zeal"
			log.info(f"[{req_id}] navigating to document page")
			_open(page, url, req_id)
			log.info(f"[{req_id}] waiting {settle_ms} ms")
			pause(settle_ms)

			step = "save_document"
			saved = _fetch_with_session(page, url, workdir, name, req_id)
			if saved is None:
				log.info(f"[{req_id}] falling back to browser download")
				saved = _fetch_as_download(page, url, workdir, name, req_id)
			path, ext = saved
			log.info(f"[{req_id}] document saved as {path}")

			step = "upload"
			blob = store.upload_file(f"screenshots/{name}.{ext}", path, content_type_for(ext))
		log.info(f"[{req_id}] document uploaded as {blob}")
		return blob
	except Exception as e:
		raise StepError(step, str(e)) from e
