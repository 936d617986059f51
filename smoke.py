# tabs preferred

import os, logging, pathlib
from browser import open_browser
from blobstore import sanitize_site, screenshot_blob, utc_millis

log = logging.getLogger("smoke")

SMOKE_URL	= os.environ.get("SMOKE_URL", "https://github.com")
OUT_PATH	= os.environ.get("SMOKE_OUT", os.path.join("screenshots", "github.png"))

def run_smoke(*, store=None, out_path: str = None, url: str = SMOKE_URL, req_id: str = "-") -> list:
	"""Launch, navigate, screenshot. Returns where the screenshot went."""
	written = []
	with open_browser(req_id=req_id) as page:
		log.info(f"[{req_id}] navigating to {url}")
		page.goto(url)
		log.info(f"[{req_id}] navigation to {url} complete")
		png = page.screenshot()

	if out_path:
		pathlib.Path(out_path).parent.mkdir(parents=True, exist_ok=True)
		pathlib.Path(out_path).write_bytes(png)
		log.info(f"[{req_id}] screenshot saved to {out_path}")
		written.append(out_path)
	if store is not None:
		written.append(store.upload_bytes(screenshot_blob(sanitize_site(url), utc_millis()), png, "image/png"))
	return written

def main():
	logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
	run_smoke(out_path=OUT_PATH)
	log.info("script completed successfully")

if __name__ == "__main__":
	main()
