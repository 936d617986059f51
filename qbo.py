# tabs preferred
import logging
from browser import open_browser, pause, StepError
from blobstore import sanitize_site, utc_millis
from capture import snapshot, upload_snapshot

log = logging.getLogger("qbo")

HOST		= "qbo.intuit.com"
SITE		= sanitize_site(HOST)
SETTLE_MS	= 5_000

USER_SEL		= "#iux-identifier-first-international-email-user-id-input"
SUBMIT_SEL		= "[data-testid='IdentifierFirstSubmitButton']"
PASS_SEL		= "#iux-password-confirmation-password"
CONTINUE_SEL	= "[data-testid='passwordVerificationContinueButton']"
SMS_OTP_SEL		= "[data-testid='challengePickerOption_SMS_OTP']"

def run_qbo(*, username: str, password: str, store, req_id: str) -> tuple[str, list]:
	"""
	Drives the identifier-first sign-in up to the SMS one-time-code challenge
	and returns (html, blob_names) of the page reached.
	"""
	ts = utc_millis()
	step = "goto"
	try:
		with open_browser(req_id=req_id) as page:
			log.info(f"[{req_id}] navigating to {HOST}")
			page.goto(f"https://{HOST}")
			pause(SETTLE_MS)

			step = "identifier"
			page.wait_for_selector(USER_SEL)
			page.fill(USER_SEL, username)
			page.wait_for_selector(SUBMIT_SEL)
			page.click(SUBMIT_SEL)
			log.info(f"[{req_id}] identifier submitted")

			step = "password"
			page.wait_for_selector(PASS_SEL, timeout=60_000)
			page.fill(PASS_SEL, password)
			page.wait_for_selector(CONTINUE_SEL)
			page.click(CONTINUE_SEL)
			log.info(f"[{req_id}] password submitted")

			step = "challenge"
			page.wait_for_selector(SMS_OTP_SEL)
			page.click(SMS_OTP_SEL)
			log.info(f"[{req_id}] text code requested")
			pause(SETTLE_MS)
			png, html = snapshot(page, full_page=False)

		step = "upload"
		blobs = upload_snapshot(store, SITE, ts, png, html)
		log.info(f"[{req_id}] screenshot and HTML uploaded")
		return html, blobs
	except Exception as e:
		raise StepError(step, str(e)) from e
