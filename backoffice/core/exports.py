"""
CSV export and import helpers shared by the list screens.
"""
import csv
import io
import logging
from django.http import HttpResponse

logger = logging.getLogger(__name__)

MAX_IMPORT_ROWS = 5000


class CSVImportError(Exception):
    """Raised when an uploaded CSV cannot be read"""


def csv_response(filename, headers, rows):
    """Build a downloadable CSV response from a header row and data rows"""
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    writer = csv.writer(response)
    writer.writerow(headers)
    count = 0
    for row in rows:
        writer.writerow(['' if value is None else value for value in row])
        count += 1
    logger.info(f"Exported {count} rows to {filename}")
    return response


def read_csv_upload(uploaded_file):
    """
    Read an uploaded CSV file into a list of dicts keyed by header.

    Header names and cell values are stripped; blank rows are skipped.
    Raises CSVImportError for missing, undecodable or oversized files.
    """
    if uploaded_file is None:
        raise CSVImportError('No file uploaded')

    raw = uploaded_file.read()
    if isinstance(raw, bytes):
        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise CSVImportError('File must be UTF-8 encoded CSV')
    else:
        text = raw

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise CSVImportError('CSV file has no header row')

    rows = []
    for row in reader:
        cleaned = {
            (key or '').strip(): value.strip() if isinstance(value, str) else value
            for key, value in row.items()
        }
        if not any(cleaned.values()):
            continue
        rows.append(cleaned)
        if len(rows) > MAX_IMPORT_ROWS:
            raise CSVImportError(f'CSV file exceeds {MAX_IMPORT_ROWS} rows')
    return rows
