"""
Export - CSV/JSON rendering, export templates, history, and cloud destinations.

Cloud destinations are simulated: nothing here performs network access.
Exporting to a "connected" service only returns the service's placeholder URL.
"""

import csv
import io
import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .exceptions import ExportError
from .models import Expense, format_timestamp
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = 'export-history'
INTEGRATIONS_KEY = 'cloud-integrations'
HISTORY_LIMIT = 50

EXPORT_FORMATS = ('csv', 'json', 'pdf', 'excel')


# ============================================================================
# FORMATTING
# ============================================================================

def format_currency(amount: float, currency_format: str = "${amount}") -> str:
    """Format amount with currency symbol/format (2 decimal places).

    Args:
        amount: The amount to format
        currency_format: Format string with {amount} placeholder, e.g. "${amount}" or "{amount} zł"

    Returns:
        Formatted currency string, e.g. "$1,234.56"
    """
    formatted_num = f"{abs(amount):,.2f}"
    result = currency_format.format(amount=formatted_num)
    return f"-{result}" if amount < 0 else result


def format_date(value: datetime) -> str:
    """Format a date for display, e.g. 'Jan 5, 2025'."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_file_size(num_bytes: int) -> str:
    """Human-readable file size, e.g. '1.5 KB'."""
    if num_bytes == 0:
        return '0 Bytes'
    sizes = ['Bytes', 'KB', 'MB', 'GB']
    i = 0
    while i < len(sizes) - 1 and num_bytes >= 1024 ** (i + 1):
        i += 1
    value = round(num_bytes / (1024 ** i), 2)
    # Drop a trailing .0 so 2048 bytes reads "2 KB"
    if float(value).is_integer():
        value = int(value)
    return f"{value} {sizes[i]}"


BYTES_PER_RECORD = {
    'csv': 150,
    'json': 300,
    'pdf': 400,
    'excel': 250,
}


def estimate_file_size(record_count: int, export_format: str) -> str:
    """Rough size of an export: 1 KB base plus a per-record cost by format."""
    if export_format not in BYTES_PER_RECORD:
        raise ExportError(f"Unknown export format: '{export_format}'")
    return format_file_size(1024 + record_count * BYTES_PER_RECORD[export_format])


# ============================================================================
# FILE EXPORTS
# ============================================================================

def csv_filename(now: Optional[datetime] = None) -> str:
    """Default download name for a CSV export, e.g. expenses-2025-01-31.csv."""
    now = now or datetime.now()
    return f"expenses-{now.strftime('%Y-%m-%d')}.csv"


def export_to_csv(expenses: Sequence[Expense]) -> str:
    """Render expenses as CSV text with every cell quoted."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    output.write('Date,Category,Description,Amount\n')
    for expense in expenses:
        writer.writerow([
            format_date(expense.date),
            expense.category.value,
            expense.description,
            f"{expense.amount:.2f}",
        ])
    return output.getvalue()


def export_to_json(expenses: Sequence[Expense]) -> str:
    """Render expenses as a JSON array in the stored record shape."""
    return json.dumps([e.to_dict() for e in expenses], indent=2)


RENDERERS = {
    'csv': export_to_csv,
    'json': export_to_json,
}


def render_export(expenses: Sequence[Expense], export_format: str) -> str:
    """Render expenses in a file format that can be produced locally."""
    try:
        renderer = RENDERERS[export_format]
    except KeyError:
        raise ExportError(
            f"Format '{export_format}' cannot be written locally. "
            f"Use one of: {', '.join(RENDERERS)}"
        )
    return renderer(expenses)


# ============================================================================
# TEMPLATES
# ============================================================================

@dataclass(frozen=True)
class ExportTemplate:
    id: str
    name: str
    description: str
    formats: tuple
    fields: tuple
    use_case: str


EXPORT_TEMPLATES = [
    ExportTemplate(
        id='standard',
        name='Standard Export',
        description='All expense data with standard fields',
        formats=('csv', 'json', 'pdf', 'excel'),
        fields=('date', 'category', 'description', 'amount'),
        use_case='General purpose export for analysis',
    ),
    ExportTemplate(
        id='tax-report',
        name='Tax Report',
        description='IRS-compliant expense report',
        formats=('pdf', 'excel'),
        fields=('date', 'category', 'description', 'amount', 'tax-category'),
        use_case='Tax filing and deductions',
    ),
    ExportTemplate(
        id='monthly-summary',
        name='Monthly Summary',
        description='Aggregated monthly breakdown',
        formats=('pdf', 'excel'),
        fields=('month', 'category', 'total', 'count'),
        use_case='Budget reviews and planning',
    ),
    ExportTemplate(
        id='category-analysis',
        name='Category Analysis',
        description='Spending by category with charts',
        formats=('pdf', 'excel'),
        fields=('category', 'total', 'percentage', 'trend'),
        use_case='Identify spending patterns',
    ),
    ExportTemplate(
        id='detailed-breakdown',
        name='Detailed Breakdown',
        description='Comprehensive expense details',
        formats=('excel', 'csv'),
        fields=('date', 'category', 'description', 'amount', 'created', 'updated', 'tags'),
        use_case='In-depth analysis and auditing',
    ),
    ExportTemplate(
        id='simple-list',
        name='Simple List',
        description='Basic expense list',
        formats=('csv', 'pdf'),
        fields=('date', 'description', 'amount'),
        use_case='Quick reference and sharing',
    ),
]


def get_template(template_id: str) -> ExportTemplate:
    for template in EXPORT_TEMPLATES:
        if template.id == template_id:
            return template
    valid = ', '.join(t.id for t in EXPORT_TEMPLATES)
    raise ExportError(f"Unknown export template: '{template_id}'. Valid templates: {valid}")


# ============================================================================
# EXPORT HISTORY
# ============================================================================

class ExportHistory:
    """Most recent exports, newest first, capped at HISTORY_LIMIT entries."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_history(self) -> List[Dict]:
        return list(self.kv.get(HISTORY_KEY, []))

    def add_to_history(self, template: str, export_format: str, record_count: int,
                       file_size: str, status: str = 'completed',
                       service: Optional[str] = None) -> Dict:
        item = {
            'id': str(uuid.uuid4()),
            'timestamp': format_timestamp(datetime.now()),
            'template': template,
            'format': export_format,
            'service': service,
            'recordCount': record_count,
            'fileSize': file_size,
            'status': status,
        }
        history = [item] + self.get_history()
        self.kv.set(HISTORY_KEY, history[:HISTORY_LIMIT])
        return item

    def clear_history(self) -> None:
        self.kv.remove(HISTORY_KEY)


# ============================================================================
# CLOUD DESTINATIONS (simulated)
# ============================================================================

# service id -> (display name, description, placeholder URL)
CLOUD_SERVICES = {
    'email': ('Email', 'Send exports via email', ''),
    'google-sheets': ('Google Sheets', 'Export directly to Google Sheets',
                      'https://docs.google.com/spreadsheets/d/abc123'),
    'google-drive': ('Google Drive', 'Save to Google Drive',
                     'https://drive.google.com/file/d/xyz789'),
    'dropbox': ('Dropbox', 'Sync with Dropbox', 'https://www.dropbox.com/s/abc123'),
    'onedrive': ('OneDrive', 'Microsoft OneDrive integration',
                 'https://onedrive.live.com/view.aspx?id=xyz'),
    'notion': ('Notion', 'Export to Notion database', 'https://notion.so/Expense-Report-abc123'),
    'airtable': ('Airtable', 'Sync with Airtable base', 'https://airtable.com/appXYZ/tblABC'),
}


@dataclass
class CloudIntegration:
    id: str
    name: str
    description: str
    connected: bool = False
    status: str = 'disconnected'
    last_sync: Optional[str] = None


def default_integrations() -> List[CloudIntegration]:
    """All services disconnected except email."""
    return [
        CloudIntegration(
            id=service_id,
            name=name,
            description=description,
            connected=(service_id == 'email'),
            status='connected' if service_id == 'email' else 'disconnected',
        )
        for service_id, (name, description, _url) in CLOUD_SERVICES.items()
    ]


class Integrations:
    """Connection state of the cloud destinations."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_integrations(self) -> List[CloudIntegration]:
        stored = self.kv.get(INTEGRATIONS_KEY)
        if not stored:
            return default_integrations()
        return [CloudIntegration(**item) for item in stored]

    def get(self, service_id: str) -> CloudIntegration:
        for integration in self.get_integrations():
            if integration.id == service_id:
                return integration
        raise ExportError(f"Unknown cloud service: '{service_id}'")

    def save_integrations(self, integrations: List[CloudIntegration]) -> None:
        self.kv.set(INTEGRATIONS_KEY, [asdict(i) for i in integrations])

    def toggle_connection(self, service_id: str) -> CloudIntegration:
        """Flip a service between connected and disconnected."""
        integrations = self.get_integrations()
        for integration in integrations:
            if integration.id == service_id:
                integration.connected = not integration.connected
                integration.status = 'connected' if integration.connected else 'disconnected'
                integration.last_sync = format_timestamp(datetime.now()) if integration.connected else None
                self.save_integrations(integrations)
                logger.info("%s is now %s", integration.name, integration.status)
                return integration
        raise ExportError(f"Unknown cloud service: '{service_id}'")


def export_to_cloud_service(integrations: Integrations, service_id: str, template_id: str,
                            export_format: str, expenses: Sequence[Expense]) -> Dict:
    """Simulate sending an export to a cloud service.

    Returns:
        dict with 'success', 'url' and 'message'
    """
    integration = integrations.get(service_id)
    if not integration.connected:
        raise ExportError(f"{integration.name} is not connected")

    template = get_template(template_id)
    if export_format not in template.formats:
        raise ExportError(
            f"Template '{template.id}' does not support format '{export_format}'. "
            f"Supported: {', '.join(template.formats)}"
        )

    logger.info("Simulated export of %d expenses to %s", len(expenses), integration.name)
    return {
        'success': True,
        'url': CLOUD_SERVICES[service_id][2],
        'message': f"Successfully exported to {integration.name}",
    }
