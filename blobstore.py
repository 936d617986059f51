# tabs preferred
import os, re, time, logging
from azure.storage.blob import BlobServiceClient, ContentSettings

from browser import ConfigError

log = logging.getLogger("blobstore")

SITE_RE = re.compile(r"[^a-zA-Z0-9]")
SAFE_RE = re.compile(r"[^A-Za-z0-9_.\-]")

# ── Naming ────────────────────────────────────────────────────────────────────
def sanitize_site(url: str) -> str:
	return SITE_RE.sub("_", url)

def safe_name(s: str) -> str:
	return SAFE_RE.sub("_", (s or "").strip())

def utc_millis() -> int:
	return int(time.time() * 1000)

def screenshot_blob(site: str, ts: int, step: str = None) -> str:
	if step:
		return f"screenshots/{site}_{ts}_{safe_name(step)}.png"
	return f"screenshots/{site}_{ts}.png"

def html_blob(site: str, ts: int, step: str = None) -> str:
	# step captures keep the markup, the single final capture is stored as text
	if step:
		return f"html/{site}_{ts}_{safe_name(step)}.html"
	return f"html/{site}_{ts}.txt"

def inbound_blob(site: str, report: str, ext: str) -> str:
	return f"inbound/{site}/{safe_name(report)}.{ext.lstrip('.')}"

def records_blob(site: str, report: str) -> str:
	return f"{site}/{safe_name(report)}.json"

# ── Store ─────────────────────────────────────────────────────────────────────
class ArtifactStore:
	"""Write-once artifact sink on top of one blob container."""

	def __init__(self, container):
		self.container = container

	@classmethod
	def from_env(cls):
		conn = os.getenv("AZURE_STORAGE_CONNECTION_STRING")
		name = os.getenv("AZURE_CONTAINER_NAME")
		if not conn or not name:
			raise ConfigError("AZURE_STORAGE_CONNECTION_STRING and/or AZURE_CONTAINER_NAME missing")
		service = BlobServiceClient.from_connection_string(conn)
		return cls(service.get_container_client(name))

	def upload_bytes(self, name: str, data: bytes, content_type: str = "application/octet-stream") -> str:
		self.container.upload_blob(
			name, data, overwrite=True,
			content_settings=ContentSettings(content_type=content_type),
		)
		log.debug(f"uploaded {name} ({len(data)} bytes)")
		return name

	def upload_text(self, name: str, text: str, content_type: str = "text/plain") -> str:
		return self.upload_bytes(name, (text or "").encode("utf-8"), f"{content_type}; charset=utf-8")

	def upload_file(self, name: str, path: str, content_type: str = "application/octet-stream") -> str:
		with open(path, "rb") as f:
			self.container.upload_blob(
				name, f, overwrite=True,
				content_settings=ContentSettings(content_type=content_type),
			)
		log.debug(f"uploaded {name} from {path}")
		return name

	def list_names(self, prefix: str):
		"""Returns [(name, last_modified)] for every blob under prefix."""
		return [(b.name, b.last_modified) for b in self.container.list_blobs(name_starts_with=prefix)]

	def delete(self, name: str):
		self.container.delete_blob(name)
		log.debug(f"deleted {name}")
