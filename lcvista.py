# tabs preferred
import os, logging, tempfile
from playwright.sync_api import TimeoutError as PWTimeout
from browser import open_browser, pause, wait_network_idle
from blobstore import sanitize_site, inbound_blob, records_blob
from capture import capture_state
from convert import xlsx_to_rows, rows_to_csv, csv_to_records, records_to_json
import verification

log = logging.getLogger("lcvista")

PORTAL_URL	= "https://bmssu.lcvista.com/"
REPORTS_URL	= os.getenv("LCVISTA_REPORTS_URL", "https://bmssu.lcvista.com/reports/")
SITE		= sanitize_site(PORTAL_URL)

STEP_WAIT_MS	= 3_000
CODE_PROMPT_MS	= 15_000
DOWNLOAD_MS		= 60_000

# ── Locators (Microsoft sign-in, then the portal) ─────────────────────────────
USER_SEL	= "#i0116"
PASS_SEL	= "#i0118"
NEXT_SEL	= "#idSIButton9"
CODE_SEL	= "#idTxtBx_SAOTCC_OTC, input[name='otc']"
CODE_SUBMIT	= "#idSubmit_SAOTCC_Continue"
KMSI_NO		= "#idBtn_Back"
EXPORT_SEL	= "button:has-text('Export'), a:has-text('Export')"

def _code_prompt_visible(page) -> bool:
	try:
		page.wait_for_selector(CODE_SEL, timeout=CODE_PROMPT_MS)
		return True
	except PWTimeout:
		return False

def _read_export(path: str):
	"""Returns (rows, None) for a workbook, (None, text) for a CSV export."""
	if path.lower().endswith(".csv"):
		with open(path, "r", encoding="utf-8-sig", newline="") as f:
			return None, f.read()
	return xlsx_to_rows(path), None

def run_lcvista(*, username: str, password: str, store, req_id: str, report: str = None, jurisdiction: str = None) -> tuple[str, list]:
	"""
	Signs in through the Microsoft login page, relaying the emailed code via
	blob storage when asked for one, then optionally exports `report`.
	Returns (message, blob_names). A failure ends the run with a message naming
	the step it stopped at; the captures taken so far stay in storage.
	"""
	blobs = []
	step = "initial"
	try:
		with open_browser(req_id=req_id) as page:
			page.goto(PORTAL_URL, wait_until="networkidle")
			log.info(f"[{req_id}] navigated to {PORTAL_URL}")
			blobs += capture_state(page, store, SITE, step, req_id)

			step = "fill_username"
			page.fill(USER_SEL, username)
			log.info(f"[{req_id}] filled in the username field")
			blobs += capture_state(page, store, SITE, step, req_id)
			page.click(NEXT_SEL)
			pause(STEP_WAIT_MS)

			step = "fill_password"
			page.wait_for_selector(PASS_SEL, timeout=30_000)
			page.fill(PASS_SEL, password)
			page.click(NEXT_SEL)
			pause(STEP_WAIT_MS)
			blobs += capture_state(page, store, SITE, step, req_id)

			step = "verification"
			if _code_prompt_visible(page):
				verification.discard_pending(store, SITE, req_id)
				if not verification.request_code(SITE, req_id):
					log.warning(f"[{req_id}] nobody was emailed for the code, waiting for a manual upload to {verification.code_folder(SITE)}")
				code = verification.wait_for_code(store, SITE, req_id)
				page.fill(CODE_SEL, code)
				page.click(CODE_SUBMIT)
				pause(STEP_WAIT_MS)
				blobs += capture_state(page, store, SITE, step, req_id)
			else:
				log.info(f"[{req_id}] no verification code requested")

			step = "signed_in"
			if page.locator(KMSI_NO).count():
				page.click(KMSI_NO)
			wait_network_idle(page)
			blobs += capture_state(page, store, SITE, step, req_id)

			if not report:
				return "Signed in and content uploaded.", blobs

			if not jurisdiction:
				log.warning(f"[{req_id}] no jurisdiction tag given, records for {report} go out untagged")

			step = "open_report"
			page.goto(REPORTS_URL)
			wait_network_idle(page)
			page.click(f"text={report}")
			wait_network_idle(page)
			blobs += capture_state(page, store, SITE, step, req_id)

			step = "export"
			page.wait_for_selector(EXPORT_SEL, timeout=30_000)
			with page.expect_download(timeout=DOWNLOAD_MS) as dl_info:
				page.click(EXPORT_SEL)
			download = dl_info.value

			step = "convert"
			with tempfile.TemporaryDirectory(prefix="lcvista_") as workdir:
				path = os.path.join(workdir, download.suggested_filename or f"{report}.xlsx")
				download.save_as(path)
				rows, csv_text = _read_export(path)
				if rows is not None:
					blobs.append(store.upload_file(inbound_blob(SITE, report, "xlsx"), path,
						"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"))
					csv_text = rows_to_csv(rows)
				blobs.append(store.upload_text(inbound_blob(SITE, report, "csv"), csv_text, "text/csv"))

			records = csv_to_records(csv_text, jurisdiction=jurisdiction)
			blobs.append(store.upload_text(records_blob(SITE, report), records_to_json(records), "application/json"))
			log.info(f"[{req_id}] report {report}: {len(records)} records uploaded")
			return f"Report {report} exported: {len(records)} records.", blobs
	except Exception as e:
		failed = getattr(e, "step", step)
		log.error(f"[{req_id}] error during lcVista run at step {failed}: {e}")
		return f"Run stopped at step {failed}: {e}", blobs
