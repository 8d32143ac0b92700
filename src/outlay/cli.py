"""
Outlay CLI - Command-line interface.

Usage:
    outlay init [dir]                                # Create config/ and data/
    outlay add --amount 12.50 --category Food --description "Starbucks latte"
    outlay list --category Food --search coffee      # Filtered expense list
    outlay summary                                   # Totals and category breakdown
    outlay vendors                                   # Spending by detected vendor
    outlay export --format csv                       # Write a CSV export
"""

import argparse
import logging
import os
import sys
from datetime import date, datetime

from .config_loader import load_config
from .exceptions import OutlayError
from .export import (
    EXPORT_FORMATS,
    EXPORT_TEMPLATES,
    ExportHistory,
    Integrations,
    csv_filename,
    estimate_file_size,
    export_to_cloud_service,
    format_currency,
    format_date,
    get_template,
    render_export,
)
from .filters import filter_expenses
from .log import setup_logging
from .models import (
    ALL_CATEGORIES,
    Category,
    DateRange,
    FilterSpec,
    parse_datetime,
    validate_expense_form,
)
from .storage import ExpenseStore, KeyValueStore
from .summary import calculate_summary
from .vendor_utils import calculate_vendor_summaries, compile_rules, detect_vendor, get_all_rules

logger = logging.getLogger(__name__)


STARTER_SETTINGS = '''# Outlay Settings

# Where expenses are stored (relative to the directory containing config/)
data_file: data/outlay.json

# How amounts are displayed. Must contain {{amount}}.
currency_format: "${{amount}}"

# Number of expenses shown under "Recent" in the summary
recent_limit: 5

# Custom vendor rules (relative to config/)
vendor_rules: vendor_rules.csv
'''

STARTER_VENDOR_RULES = '''# Vendor Detection Rules
#
# Map expense descriptions to vendor names.
# Format: Pattern,Vendor
#
# - Pattern: Python regex (case-insensitive) searched in the description
# - Use | for alternatives: PEETS|BLUE BOTTLE matches either
# - Your rules are checked before the built-in vendor list
#
# First match wins.
# Run: outlay detect "<description>" to check a description.
#
# Examples:
#   corner bakery,Corner Bakery
#   peets|blue bottle,Coffee Shops

Pattern,Vendor

# Add your custom rules below:

'''


def find_config_dir():
    """Find the config directory.

    Resolution order:
    1. OUTLAY_CONFIG environment variable (if set and exists)
    2. ./config

    Returns None if no config directory is found.
    """
    env_config = os.environ.get('OUTLAY_CONFIG')
    if env_config:
        env_path = os.path.abspath(env_config)
        if os.path.isdir(env_path):
            return env_path

    local = os.path.abspath('config')
    if os.path.isdir(local):
        return local

    return None


def init_config(target_dir):
    """Initialize a new workspace with starter files."""
    config_dir = os.path.join(target_dir, 'config')
    data_dir = os.path.join(target_dir, 'data')

    os.makedirs(config_dir, exist_ok=True)
    os.makedirs(data_dir, exist_ok=True)

    files_created = []
    files_skipped = []

    settings_path = os.path.join(config_dir, 'settings.yaml')
    if not os.path.exists(settings_path):
        with open(settings_path, 'w', encoding='utf-8') as f:
            f.write(STARTER_SETTINGS.format())
        files_created.append('config/settings.yaml')
    else:
        files_skipped.append('config/settings.yaml')

    rules_path = os.path.join(config_dir, 'vendor_rules.csv')
    if not os.path.exists(rules_path):
        with open(rules_path, 'w', encoding='utf-8') as f:
            f.write(STARTER_VENDOR_RULES)
        files_created.append('config/vendor_rules.csv')
    else:
        files_skipped.append('config/vendor_rules.csv')

    # Keep personal data out of version control
    gitignore_path = os.path.join(target_dir, '.gitignore')
    if not os.path.exists(gitignore_path):
        with open(gitignore_path, 'w', encoding='utf-8') as f:
            f.write('# Outlay - Ignore personal data\ndata/\nexports/\n')
        files_created.append('.gitignore')

    return files_created, files_skipped


def _fail(message):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _load_workspace(args):
    """Resolve config and open the stores. Exits with a message on failure."""
    config_dir = os.path.abspath(args.config) if args.config else find_config_dir()
    if not config_dir or not os.path.isdir(config_dir):
        print(f"Error: Config directory not found: {config_dir or os.path.abspath('config')}",
              file=sys.stderr)
        print("\nRun 'outlay init' to create a new workspace.", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(config_dir, args.settings)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    kv = KeyValueStore(config['data_file'])
    logger.debug("Using data file %s", config['data_file'])
    return config, kv, ExpenseStore(kv)


def _vendor_rules(config):
    try:
        rules = get_all_rules(config['vendor_rules'])
    except ValueError as e:
        _fail(e)
    return compile_rules(rules)


def _category_arg(value):
    """argparse type for --category: a category label or 'all'."""
    if value.strip().lower() == ALL_CATEGORIES.lower():
        return ALL_CATEGORIES
    try:
        return Category.parse(value).value
    except ValueError:
        valid = ', '.join([ALL_CATEGORIES] + [c.value for c in Category])
        raise argparse.ArgumentTypeError(f"unknown category '{value}' (choose from {valid})")


def _parse_date_arg(value, label):
    try:
        return parse_datetime(value)
    except ValueError:
        _fail(f"Invalid {label} date: '{value}'. Use YYYY-MM-DD.")


def _resolve_id(expenses, prefix):
    """Find the single expense whose id starts with prefix."""
    matches = [e for e in expenses if e.id.startswith(prefix)]
    if not matches:
        _fail(f"No expense with id '{prefix}'")
    if len(matches) > 1:
        _fail(f"Id prefix '{prefix}' matches {len(matches)} expenses; use more characters")
    return matches[0]


def _record_export(history, template_id, export_format, record_count, file_size,
                   status='completed', service=None):
    try:
        history.add_to_history(template_id, export_format, record_count, file_size,
                               status=status, service=service)
    except OutlayError as e:
        _fail(e)


def print_expense_rows(expenses, currency_format):
    print(f"{'Id':<10} {'Date':<14} {'Category':<15} {'Amount':>12}  Description")
    print("-" * 80)
    for expense in expenses:
        print(f"{expense.id[:8]:<10} {format_date(expense.date):<14} {expense.category.value:<15} "
              f"{format_currency(expense.amount, currency_format):>12}  {expense.description}")


def print_summary(summary, currency_format="${amount}"):
    """Print dashboard totals."""
    def fmt(amount):
        return format_currency(amount, currency_format)

    print("=" * 60)
    print("SPENDING SUMMARY")
    print("=" * 60)
    print(f"Total Spending:      {fmt(summary.total_spending):>14}")
    print(f"This Month:          {fmt(summary.monthly_spending):>14}")
    if summary.top_category:
        print(f"Top Category:        {summary.top_category.category.value:>14} "
              f"({fmt(summary.top_category.amount)})")
    else:
        print(f"Top Category:        {'-':>14}")

    print(f"\n{'Category':<20} {'Total':>14} {'% of Total':>10}")
    print("-" * 50)
    for entry in summary.category_breakdown:
        print(f"{entry.category.value:<20} {fmt(entry.amount):>14} {entry.percentage:>9.1f}%")

    print("\nRECENT")
    print("-" * 50)
    if not summary.recent_expenses:
        print("No expenses recorded yet.")
    for expense in summary.recent_expenses:
        print(f"{format_date(expense.date):<14} {fmt(expense.amount):>12}  {expense.description}")


def print_vendor_summaries(vendors, currency_format="${amount}"):
    def fmt(amount):
        return format_currency(amount, currency_format)

    print(f"{'Vendor':<22} {'Total':>12} {'Txns':>5} {'Average':>12} {'%':>6}  Top Category")
    print("-" * 80)
    for v in vendors:
        print(f"{v.vendor[:22]:<22} {fmt(v.total_amount):>12} {v.transaction_count:>5} "
              f"{fmt(v.average_transaction):>12} {v.percentage:>5.1f}%  {v.top_category.value}")


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_init(args):
    """Handle the 'init' subcommand."""
    target_dir = os.path.abspath(args.dir)
    print(f"Initializing Outlay workspace: {target_dir}")
    print()

    created, skipped = init_config(target_dir)

    if created:
        print("Created:")
        for f in created:
            print(f"  {f}")

    if skipped:
        print("\nSkipped (already exist):")
        for f in skipped:
            print(f"  {f}")

    print(f"""
Next steps:
  outlay add --amount 4.50 --category Food --description "Starbucks coffee"
  outlay summary

Edit {target_dir}/config/vendor_rules.csv to teach Outlay your vendors.
""")


def cmd_add(args):
    """Handle the 'add' subcommand."""
    config, _kv, store = _load_workspace(args)

    form = {
        'date': args.date or date.today().isoformat(),
        'amount': args.amount,
        'category': args.category,
        'description': args.description,
    }
    is_valid, errors = validate_expense_form(form)
    if not is_valid:
        for field_name, message in errors.items():
            print(f"Error: {field_name}: {message}", file=sys.stderr)
        sys.exit(1)

    try:
        expense = store.add_expense(form['date'], form['amount'], form['category'], form['description'])
    except OutlayError as e:
        _fail(e)

    print(f"Added {expense.id[:8]}: {format_currency(expense.amount, config['currency_format'])} "
          f"{expense.category.value} - {expense.description}")


def cmd_list(args):
    """Handle the 'list' subcommand."""
    config, _kv, store = _load_workspace(args)

    spec = FilterSpec(
        category=Category.parse(args.category) if args.category != ALL_CATEGORIES else ALL_CATEGORIES,
        date_range=DateRange(
            start=_parse_date_arg(args.start, 'start') if args.start else None,
            end=_parse_date_arg(args.end, 'end') if args.end else None,
        ),
        search_query=args.search or '',
    )

    try:
        expenses = store.get_expenses()
    except OutlayError as e:
        _fail(e)

    matched = filter_expenses(expenses, spec)
    if spec.is_active:
        print(f"Showing {len(matched)} of {len(expenses)} expenses\n")

    if not matched:
        print("No expenses found.")
        return

    print_expense_rows(matched, config['currency_format'])


def cmd_update(args):
    """Handle the 'update' subcommand."""
    config, _kv, store = _load_workspace(args)

    try:
        expenses = store.get_expenses()
    except OutlayError as e:
        _fail(e)
    expense = _resolve_id(expenses, args.id)

    # Validate the merged record, so partial updates get the same checks as add
    form = {
        'date': args.date if args.date is not None else expense.date.isoformat(),
        'amount': args.amount if args.amount is not None else str(expense.amount),
        'category': args.category if args.category is not None else expense.category.value,
        'description': args.description if args.description is not None else expense.description,
    }
    is_valid, errors = validate_expense_form(form)
    if not is_valid:
        for field_name, message in errors.items():
            print(f"Error: {field_name}: {message}", file=sys.stderr)
        sys.exit(1)

    changes = {}
    if args.date is not None:
        changes['date'] = args.date
    if args.amount is not None:
        changes['amount'] = args.amount
    if args.category is not None:
        changes['category'] = args.category
    if args.description is not None:
        changes['description'] = args.description.strip()

    if not changes:
        _fail("Nothing to update. Pass --date, --amount, --category or --description.")

    try:
        updated = store.update_expense(expense.id, **changes)
    except OutlayError as e:
        _fail(e)

    print(f"Updated {updated.id[:8]}: {format_currency(updated.amount, config['currency_format'])} "
          f"{updated.category.value} - {updated.description}")


def cmd_delete(args):
    """Handle the 'delete' subcommand."""
    _config, _kv, store = _load_workspace(args)

    try:
        expense = _resolve_id(store.get_expenses(), args.id)
        store.delete_expense(expense.id)
    except OutlayError as e:
        _fail(e)

    print(f"Deleted {expense.id[:8]}: {expense.description}")


def cmd_summary(args):
    """Handle the 'summary' subcommand."""
    config, _kv, store = _load_workspace(args)

    try:
        expenses = store.get_expenses()
    except OutlayError as e:
        _fail(e)

    summary = calculate_summary(expenses, recent_limit=config['recent_limit'])
    print_summary(summary, config['currency_format'])


def cmd_vendors(args):
    """Handle the 'vendors' subcommand."""
    config, _kv, store = _load_workspace(args)

    try:
        expenses = store.get_expenses()
    except OutlayError as e:
        _fail(e)

    if not expenses:
        print("No expenses recorded yet.")
        return

    vendors = calculate_vendor_summaries(expenses, _vendor_rules(config))
    if args.limit:
        vendors = vendors[:args.limit]
    print_vendor_summaries(vendors, config['currency_format'])


def cmd_detect(args):
    """Handle the 'detect' subcommand - show which vendor a description maps to."""
    rules = None
    config_dir = os.path.abspath(args.config) if args.config else find_config_dir()
    if config_dir and os.path.isdir(config_dir):
        try:
            config = load_config(config_dir, args.settings)
        except (FileNotFoundError, ValueError) as e:
            _fail(e)
        rules = _vendor_rules(config)

    print(detect_vendor(args.description, rules))


def cmd_export(args):
    """Handle the 'export' subcommand."""
    config, kv, store = _load_workspace(args)

    try:
        template = get_template(args.template)
        expenses = store.get_expenses()
    except OutlayError as e:
        _fail(e)

    if not expenses:
        _fail("No expenses to export")

    if args.format not in template.formats:
        _fail(f"Template '{template.id}' does not support format '{args.format}'. "
              f"Supported: {', '.join(template.formats)}")

    history = ExportHistory(kv)
    file_size = estimate_file_size(len(expenses), args.format)

    if args.service:
        try:
            result = export_to_cloud_service(Integrations(kv), args.service, template.id,
                                             args.format, expenses)
        except OutlayError as e:
            _record_export(history, template.id, args.format, len(expenses), file_size,
                           status='failed', service=args.service)
            _fail(e)
        _record_export(history, template.id, args.format, len(expenses), file_size,
                       service=args.service)
        print(result['message'])
        if result['url']:
            print(f"  {result['url']}")
        return

    try:
        content = render_export(expenses, args.format)
    except OutlayError as e:
        _fail(e)

    if args.output:
        output_path = args.output
    else:
        output_dir = os.path.join(os.path.dirname(config['_config_dir']), 'exports')
        os.makedirs(output_dir, exist_ok=True)
        filename = csv_filename()
        if args.format != 'csv':
            filename = filename[:-len('csv')] + args.format
        output_path = os.path.join(output_dir, filename)

    try:
        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
    except OSError as e:
        _fail(f"Could not write {output_path}: {e}")

    _record_export(history, template.id, args.format, len(expenses), file_size)
    print(f"Exported {len(expenses)} expenses to {output_path}")


def cmd_history(args):
    """Handle the 'history' subcommand."""
    _config, kv, _store = _load_workspace(args)

    history = ExportHistory(kv)
    try:
        if args.clear:
            history.clear_history()
            print("Export history cleared.")
            return
        items = history.get_history()
    except OutlayError as e:
        _fail(e)

    if not items:
        print("No exports yet.")
        return

    print(f"{'When':<20} {'Template':<20} {'Format':<7} {'Records':>7} {'Size':>10}  Status")
    print("-" * 80)
    for item in items:
        when = parse_datetime(item['timestamp']).strftime('%Y-%m-%d %H:%M')
        where = f" ({item['service']})" if item.get('service') else ''
        print(f"{when:<20} {item['template']:<20} {item['format']:<7} {item['recordCount']:>7} "
              f"{item['fileSize']:>10}  {item['status']}{where}")


def cmd_integrations(args):
    """Handle the 'integrations' subcommand."""
    _config, kv, _store = _load_workspace(args)
    integrations = Integrations(kv)

    if args.toggle:
        try:
            integration = integrations.toggle_connection(args.toggle)
        except OutlayError as e:
            _fail(e)
        print(f"{integration.name}: {integration.status}")
        return

    try:
        available = integrations.get_integrations()
    except OutlayError as e:
        _fail(e)

    for integration in available:
        marker = '*' if integration.connected else ' '
        print(f" {marker} {integration.id:<15} {integration.name:<15} {integration.description}")


def _add_workspace_args(parser):
    parser.add_argument(
        '--config', '-c',
        help='Path to config directory (default: $OUTLAY_CONFIG or ./config)'
    )
    parser.add_argument(
        '--settings', '-s',
        default='settings.yaml',
        help='Settings file name (default: settings.yaml)'
    )


def main(argv=None):
    """Main entry point for the outlay CLI."""
    parser = argparse.ArgumentParser(
        prog='outlay',
        description='Track personal expenses and see where the money goes.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  outlay init                          Create config/ and data/ here
  outlay add -a 12.50 -k Food -d "Chipotle burrito"
  outlay list --search coffee          Find expenses mentioning coffee
  outlay list --start 2025-01-01 --end 2025-01-31
  outlay summary                       Totals, categories, recent expenses
  outlay vendors --limit 10            Top 10 vendors by spend
  outlay detect "AMAZON MKTPLACE"      Check vendor detection
  outlay export --format json          Write exports/expenses-<date>.json
'''
    )
    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Show log messages (-v info, -vv debug)'
    )

    subparsers = parser.add_subparsers(dest='command', title='commands')

    init_parser = subparsers.add_parser(
        'init',
        help='Create a new workspace with starter config files',
    )
    init_parser.add_argument(
        'dir',
        nargs='?',
        default='.',
        help='Directory to initialize (default: current directory)'
    )

    category_labels = [c.value for c in Category]

    add_parser = subparsers.add_parser('add', help='Record a new expense')
    _add_workspace_args(add_parser)
    add_parser.add_argument('--date', help='Date of the expense, YYYY-MM-DD (default: today)')
    add_parser.add_argument('--amount', '-a', required=True, help='Amount spent')
    add_parser.add_argument('--category', '-k', required=True,
                            help=f"One of: {', '.join(category_labels)}")
    add_parser.add_argument('--description', '-d', required=True, help='What the expense was for')

    list_parser = subparsers.add_parser('list', help='List expenses, optionally filtered')
    _add_workspace_args(list_parser)
    list_parser.add_argument(
        '--category', '-k',
        type=_category_arg,
        default=ALL_CATEGORIES,
        help=f"Only this category (default: All). One of: {', '.join(category_labels)}"
    )
    list_parser.add_argument('--start', help='Earliest date, YYYY-MM-DD')
    list_parser.add_argument('--end', help='Latest date, YYYY-MM-DD')
    list_parser.add_argument('--search', '-q', help='Text to find in description, category or amount')

    update_parser = subparsers.add_parser('update', help='Change an existing expense')
    _add_workspace_args(update_parser)
    update_parser.add_argument('id', help='Expense id (or a unique prefix)')
    update_parser.add_argument('--date')
    update_parser.add_argument('--amount', '-a')
    update_parser.add_argument('--category', '-k')
    update_parser.add_argument('--description', '-d')

    delete_parser = subparsers.add_parser('delete', help='Delete an expense')
    _add_workspace_args(delete_parser)
    delete_parser.add_argument('id', help='Expense id (or a unique prefix)')

    summary_parser = subparsers.add_parser('summary', help='Show totals and category breakdown')
    _add_workspace_args(summary_parser)

    vendors_parser = subparsers.add_parser('vendors', help='Show spending by detected vendor')
    _add_workspace_args(vendors_parser)
    vendors_parser.add_argument(
        '--limit', '-n',
        type=int,
        default=0,
        help='Maximum number of vendors to show (default: all)'
    )

    detect_parser = subparsers.add_parser('detect', help='Show the vendor detected for a description')
    _add_workspace_args(detect_parser)
    detect_parser.add_argument('description', help='Expense description to test')

    export_parser = subparsers.add_parser('export', help='Export expenses to a file or cloud service')
    _add_workspace_args(export_parser)
    export_parser.add_argument(
        '--format', '-f',
        choices=EXPORT_FORMATS,
        default='csv',
        help='Export format (default: csv). pdf and excel are only available via --service'
    )
    export_parser.add_argument(
        '--template', '-t',
        default='standard',
        help=f"Export template (default: standard). One of: {', '.join(t.id for t in EXPORT_TEMPLATES)}"
    )
    export_parser.add_argument('--output', '-o', help='Output file path')
    export_parser.add_argument('--service', help='Send to a connected cloud service instead of a file')

    history_parser = subparsers.add_parser('history', help='Show recent exports')
    _add_workspace_args(history_parser)
    history_parser.add_argument('--clear', action='store_true', help='Clear export history')

    integrations_parser = subparsers.add_parser('integrations', help='List or toggle cloud services')
    _add_workspace_args(integrations_parser)
    integrations_parser.add_argument('--toggle', metavar='SERVICE', help='Connect or disconnect a service')

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    commands = {
        'init': cmd_init,
        'add': cmd_add,
        'list': cmd_list,
        'update': cmd_update,
        'delete': cmd_delete,
        'summary': cmd_summary,
        'vendors': cmd_vendors,
        'detect': cmd_detect,
        'export': cmd_export,
        'history': cmd_history,
        'integrations': cmd_integrations,
    }
    commands[args.command](args)


if __name__ == '__main__':
    main()
