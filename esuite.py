# tabs preferred
import os, logging, tempfile
from browser import open_browser, pause, wait_network_idle, find_frame, StepError
from blobstore import sanitize_site, utc_millis, inbound_blob
from capture import snapshot, upload_snapshot, capture_state
from convert import xlsx_to_rows, rows_to_csv

log = logging.getLogger("esuite")

LOGIN_URL	= "https://www.empiresuite.com/login?sso=skip"
REPORTS_URL	= os.getenv("EMPIRESUITE_REPORTS_URL", "https://www.empiresuite.com/Reports/Timesheet")
SITE		= sanitize_site(LOGIN_URL)

ERROR_HTML	= "An error occurred during processing."
LOGIN_WAIT_MS = 5_000
FRAME_TIMEOUT = 30_000

# ── Locators ──────────────────────────────────────────────────────────────────
USER_SEL	= "#UserName"
PASS_SEL	= "#Password"
LOGIN_SEL	= "#LoginButton"
START_SEL	= "input[name='StartDate']"
END_SEL		= "input[name='EndDate']"
RUN_SEL		= "#RunReport, input[type='submit'][value='Run']"
EXPORT_SEL	= "a:has-text('Export'), #ExportExcel"

def _login(page, username, password):
	page.goto(LOGIN_URL)
	page.fill(USER_SEL, username)
	page.fill(PASS_SEL, password)
	page.click(LOGIN_SEL)
	pause(LOGIN_WAIT_MS)

def _export_report(page, store, report: dict, req_id: str) -> list:
	"""
	The timesheet report lives in a frameset: `main` holds a `criteria` frame
	(the filter form) and a `results` frame (the grid + export link).
	"""
	name = report["reportName"]
	step = "open_reports"
	try:
		page.goto(REPORTS_URL)
		wait_network_idle(page)
		capture_state(page, store, SITE, step, req_id)

		step = "criteria"
		main = find_frame(page, "main", FRAME_TIMEOUT)
		criteria = find_frame(main, "criteria", FRAME_TIMEOUT)
		if report.get("startDate"):
			criteria.fill(START_SEL, report["startDate"])
		if report.get("endDate"):
			criteria.fill(END_SEL, report["endDate"])
		criteria.click(RUN_SEL)
		pause(LOGIN_WAIT_MS)
		capture_state(page, store, SITE, step, req_id)

		step = "export"
		results = find_frame(main, "results", FRAME_TIMEOUT)
		results.wait_for_selector(EXPORT_SEL, timeout=FRAME_TIMEOUT)
		with page.expect_download(timeout=60_000) as dl_info:
			results.click(EXPORT_SEL)
		download = dl_info.value

		step = "upload_report"
		with tempfile.TemporaryDirectory(prefix="esuite_") as workdir:
			path = os.path.join(workdir, download.suggested_filename or f"{name}.xlsx")
			download.save_as(path)
			names = [store.upload_file(inbound_blob(SITE, name, "xlsx"), path,
				"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")]
			names.append(store.upload_text(inbound_blob(SITE, name, "csv"), rows_to_csv(xlsx_to_rows(path)), "text/csv"))
		log.info(f"[{req_id}] report {name} exported")
		return names
	except StepError:
		raise
	except Exception as e:
		raise StepError(step, str(e)) from e

def run_esuite(*, username: str, password: str, store, req_id: str, report: dict = None) -> tuple[str, list]:
	"""
	Returns (html, blob_names). Browser failures do not propagate: the page
	HTML is replaced by a placeholder and an empty screenshot is stored.
	"""
	ts = utc_millis()
	blobs = []
	png, html = b"", ERROR_HTML
	try:
		with open_browser(req_id=req_id) as page:
			_login(page, username, password)
			png, html = snapshot(page, full_page=False)
			log.info(f"[{req_id}] logged in, page captured")
			if report and report.get("reportName"):
				blobs += _export_report(page, store, report, req_id)
	except Exception as e:
		log.error(f"[{req_id}] error during eSuite run: {e}")

	try:
		blobs += upload_snapshot(store, SITE, ts, png, html)
		log.info(f"[{req_id}] screenshot and HTML uploaded")
	except Exception as e:
		log.error(f"[{req_id}] error during blob upload: {e}")
	return html, blobs
