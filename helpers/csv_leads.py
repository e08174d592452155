"""
CSV helpers for the leads pipeline: preview, column-mapped parsing and the
SmartLead import/export formats.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("firstName", "lastName", "email", "company", "title")

EXPORT_HEADERS = (
    "email",
    "firstName",
    "lastName",
    "company",
    "title",
    "custom_field_1_subject",
    "custom_field_2_body",
    "custom_field_3_research_notes",
)

# SmartLead export column -> our field name
SMARTLEAD_EXPORT_COLUMNS = {
    "email": "company_email",
    "firstName": "customer_name",
    "company": "company_name",
    "custom_field_1_subject": "custom_fields.email_subject",
    "custom_field_2_body": "custom_fields.email_content",
}


class CsvMappingError(ValueError):
    """Raised when required CSV columns cannot be identified."""

    pass


@dataclass
class ParsedContact:
    first_name: str
    last_name: str
    email: str
    company: str
    title: str
    raw_data: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedContacts:
    contacts: List[ParsedContact]
    invalid_rows: int

    @property
    def total_rows(self) -> int:
        return len(self.contacts) + self.invalid_rows


def read_csv_frame(file_content: str) -> pd.DataFrame:
    """
    Load CSV text into a frame of trimmed strings.

    Blank lines and rows with no values are dropped. Rows with more cells than
    the header keep only the leading cells.
    """
    text = (file_content or "").strip()
    if not text:
        return pd.DataFrame()

    frame = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        index_col=False,
        engine="python",
        on_bad_lines=lambda line: line,
    ).fillna("")
    frame.columns = [str(column).strip() for column in frame.columns]
    frame = frame.map(str.strip)
    return frame[(frame != "").any(axis=1)].reset_index(drop=True)


def get_csv_preview(file_content: str, row_count: int = 5) -> Dict[str, List]:
    """Return the header row and the first `row_count` data rows."""
    frame = read_csv_frame(file_content)
    if frame.columns.empty:
        return {"headers": [], "rows": []}
    return {"headers": list(frame.columns), "rows": frame.head(row_count).values.tolist()}


def csv_snippet(file_content: str, row_count: int = 5) -> str:
    """Header plus a few rows as CSV text, for column detection prompts."""
    frame = read_csv_frame(file_content)
    if frame.columns.empty:
        return ""
    return frame.head(row_count).to_csv(index=False, lineterminator="\n").strip()


def split_full_name(value: str):
    parts = value.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def parse_csv_with_mapping(
    file_content: str, mapping: Dict[str, Optional[str]]
) -> ParsedContacts:
    """
    Parse lead rows using a field -> header mapping.

    Rows missing any required value are counted in `invalid_rows` and skipped.
    When firstName and lastName map to the same header, it is treated as a
    full name and split on whitespace.

    Raises:
        CsvMappingError: If a required field has no matching header.
    """
    frame = read_csv_frame(file_content)
    if frame.empty:
        return ParsedContacts(contacts=[], invalid_rows=0)

    missing = [
        field_name
        for field_name in REQUIRED_FIELDS
        if not (mapping.get(field_name) and mapping[field_name] in frame.columns)
    ]
    if missing:
        raise CsvMappingError(f"Could not identify columns for: {', '.join(missing)}")

    combined_name_header = (
        mapping["firstName"] if mapping["firstName"] == mapping["lastName"] else None
    )

    contacts = []
    invalid_rows = 0
    for raw_data in frame.to_dict(orient="records"):
        first_name = raw_data[mapping["firstName"]]
        last_name = raw_data[mapping["lastName"]]
        if combined_name_header:
            first_name, split_last = split_full_name(first_name)
            last_name = split_last or last_name

        record = {
            "first_name": first_name,
            "last_name": last_name,
            "email": raw_data[mapping["email"]],
            "company": raw_data[mapping["company"]],
            "title": raw_data[mapping["title"]],
        }
        if not all(record.values()):
            invalid_rows += 1
            continue

        contacts.append(ParsedContact(raw_data=raw_data, **record))

    logger.info(f"Parsed {len(contacts)} contacts from CSV ({invalid_rows} invalid rows)")
    return ParsedContacts(contacts=contacts, invalid_rows=invalid_rows)


def export_to_csv(results) -> str:
    """
    Render generated emails as a SmartLead import CSV.

    Args:
        results: Iterable of dicts with `contact` (firstName, lastName, email,
            company, title), `subject`, `body` and `researchSummary`.
    """
    frame = pd.DataFrame(
        [
            [
                result["contact"]["email"],
                result["contact"]["firstName"],
                result["contact"]["lastName"],
                result["contact"]["company"],
                result["contact"]["title"],
                result.get("subject") or "",
                result.get("body") or "",
                result.get("researchSummary") or "",
            ]
            for result in results
        ],
        columns=list(EXPORT_HEADERS),
    )
    # SmartLead expects a bare header line and fully quoted values.
    buffer = io.StringIO()
    buffer.write(",".join(EXPORT_HEADERS) + "\n")
    frame.to_csv(
        buffer, header=False, index=False, quoting=csv.QUOTE_ALL, lineterminator="\n"
    )
    return buffer.getvalue().rstrip("\n")


def extract_smartlead_data(file_content: str) -> List[Dict[str, str]]:
    """Map rows of a SmartLead lead export back onto our export field names."""
    frame = read_csv_frame(file_content)
    columns = {
        key: column for key, column in SMARTLEAD_EXPORT_COLUMNS.items() if column in frame.columns
    }
    return [
        {key: record[column] for key, column in columns.items()}
        for record in frame.to_dict(orient="records")
    ]
