# tabs preferred
import logging
from blobstore import screenshot_blob, html_blob, utc_millis

log = logging.getLogger("capture")

def snapshot(page, full_page=True):
	return page.screenshot(full_page=full_page), page.content()

def upload_snapshot(store, site: str, ts: int, png: bytes, html: str) -> list:
	names = [
		store.upload_bytes(screenshot_blob(site, ts), png, "image/png"),
		store.upload_text(html_blob(site, ts), html),
	]
	return names

def capture_state(page, store, site: str, step: str, req_id: str = "-") -> list:
	"""
	Upload screenshot + HTML for the step. Never raises: a failed capture must
	not abort the run it is documenting.
	"""
	try:
		ts = utc_millis()
		png, html = snapshot(page)
		names = [
			store.upload_bytes(screenshot_blob(site, ts, step), png, "image/png"),
			store.upload_text(html_blob(site, ts, step), html, "text/html"),
		]
		log.info(f"[{req_id}] captured state at step: {step}")
		return names
	except Exception as e:
		log.warning(f"[{req_id}] capture failed at step {step}: {e}")
		return []
