# tabs preferred
import io, csv, json, logging
from datetime import date, datetime
from dateutil import parser as dtparser
from openpyxl import load_workbook

log = logging.getLogger("convert")

JURISDICTION_KEY = "jurisdiction"

# ── Spreadsheet → delimited text ──────────────────────────────────────────────
def _cell_text(v) -> str:
	if v is None:
		return ""
	if isinstance(v, datetime):
		if v.hour == v.minute == v.second == 0:
			return v.date().isoformat()
		return v.isoformat(sep=" ")
	if isinstance(v, date):
		return v.isoformat()
	if isinstance(v, float) and v.is_integer():
		return str(int(v))
	return str(v)

def xlsx_to_rows(path: str) -> list:
	wb = load_workbook(path, read_only=True, data_only=True)
	try:
		ws = wb.worksheets[0]
		rows = [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
	finally:
		wb.close()
	log.debug(f"read {len(rows)} rows from {path}")
	return rows

def rows_to_csv(rows) -> str:
	buf = io.StringIO()
	writer = csv.writer(buf, lineterminator="\n")
	writer.writerows(rows)
	return buf.getvalue()

# ── Delimited text → records ──────────────────────────────────────────────────
def _normalize_date(text: str, dayfirst: bool) -> str:
	try:
		return dtparser.parse(text, dayfirst=dayfirst).date().isoformat()
	except (ValueError, OverflowError):
		return text

def csv_to_records(text: str, jurisdiction: str = None, dayfirst: bool = False) -> list:
	"""
	Header row names the fields; every value stays a string. Columns with
	"date" in their header are rewritten as YYYY-MM-DD when they parse.
	"""
	reader = csv.reader(io.StringIO(text))
	header = next(reader, None)
	if not header:
		return []
	fields = [(h or "").strip() or f"column_{i + 1}" for i, h in enumerate(header)]
	date_cols = {f for f in fields if "date" in f.lower()}

	records = []
	for row in reader:
		values = [(c or "").strip() for c in row]
		if not any(values):
			continue
		values += [""] * (len(fields) - len(values))
		rec = {}
		for f, v in zip(fields, values):
			rec[f] = _normalize_date(v, dayfirst) if v and f in date_cols else v
		if jurisdiction not in (None, ""):
			rec[JURISDICTION_KEY] = str(jurisdiction)
		records.append(rec)
	return records

def records_to_json(records) -> str:
	return json.dumps(records, indent=2, ensure_ascii=False)
