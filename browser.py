# tabs preferred
import os, time, logging
from contextlib import contextmanager
from playwright.sync_api import sync_playwright, TimeoutError as PWTimeout

log = logging.getLogger("browser")

HEADFUL		= os.getenv("HEADFUL", "0") == "1"
LAUNCH_ARGS	= ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]
VIEWPORT	= {"width": 1920, "height": 1080}
NETWORK_IDLE = 10_000

STEALTH_JS = """
	delete Object.getPrototypeOf(navigator).webdriver;
	Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
	Object.defineProperty(navigator, 'plugins', {get: () => [1, 2, 3, 4, 5]});
"""

class ConfigError(RuntimeError):
	pass

class StepError(RuntimeError):
	"""A scripted step failed; `step` names the last label the flow reached."""

	def __init__(self, step: str, message: str):
		super().__init__(message)
		self.step = step

# ── Session ───────────────────────────────────────────────────────────────────
@contextmanager
def open_browser(*, req_id: str = "-", viewport=None):
	"""
	Yields a fresh page in its own browser. Context and browser are closed on
	exit whatever happened inside the block.
	"""
	with sync_playwright() as pw:
		log.info(f"[{req_id}] launching chromium headless={not HEADFUL}")
		browser = pw.chromium.launch(headless=not HEADFUL, args=LAUNCH_ARGS)
		context = browser.new_context(accept_downloads=True, viewport=viewport or VIEWPORT)
		context.add_init_script(STEALTH_JS)
		try:
			yield context.new_page()
		finally:
			context.close()
			browser.close()
			log.info(f"[{req_id}] browser closed")

# ── Waits ─────────────────────────────────────────────────────────────────────
def pause(ms: int):
	time.sleep(ms / 1000.0)

def wait_network_idle(page, t=None):
	if t is None:
		t = NETWORK_IDLE
	try:
		page.wait_for_load_state("networkidle", timeout=t)
	except PWTimeout:
		pass

# ── Frames ────────────────────────────────────────────────────────────────────
def _walk_frames(root):
	# a Page exposes .frames (flattened), a Frame only its direct children
	frames = getattr(root, "child_frames", None)
	if frames is None:
		return list(root.frames)
	out = []
	for fr in frames:
		out.append(fr)
		out.extend(_walk_frames(fr))
	return out

def find_frame(root, name: str, timeout_ms: int = 15_000):
	start = time.time()
	while True:
		for fr in _walk_frames(root):
			if fr.name == name:
				return fr
		if time.time() - start >= timeout_ms / 1000:
			raise StepError(f"frame_{name}", f"Frame '{name}' not found within {timeout_ms} ms")
		time.sleep(0.25)
