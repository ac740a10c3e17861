"""Command-line interface for the webmail core.

Provides commands for configuration validation and for inspecting how a
batch of fetched messages is classified and threaded.

Usage:
    python -m webmail validate-config
    python -m webmail threads batch.json --limit 25
    python -m webmail classify --sender noreply@example.com --subject "Receipt"
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from webmail.config import get_config, validate_config_file
from webmail.config_schema import LoggingConfig
from webmail.core.errors import ConfigLoadError, ConfigValidationError
from webmail.core.logging import configure_logging

console = Console()


@click.group()
@click.option("--debug/--no-debug", default=False, help="Force debug logging")
def cli(debug: bool) -> None:
    """Webmail - conversation threading and human/automated triage."""
    try:
        settings = get_config().logging
    except (ConfigLoadError, ConfigValidationError):
        # Commands report the config error themselves
        settings = LoggingConfig()
    configure_logging(settings, debug=debug)


@cli.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes Pydantic schema validation.
    Reports specific errors for invalid fields.
    """
    if config_path:
        console.print(f"Validating config: [cyan]{config_path}[/cyan]")
    else:
        console.print("Validating config: [cyan]config/config.yaml[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


def _read_records(path: Path) -> list[dict[str, Any]]:
    """Read message records from a JSON or YAML file.

    Accepts a bare list of records or the fetch API's response shape
    (``{"emails": [...]}``).
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot read message batch {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("emails", [])
    if not isinstance(data, list):
        raise click.ClickException(
            f"Message batch {path} must be a list of records or an object with 'emails'"
        )
    return [record for record in data if isinstance(record, dict)]


def _thread_table(title: str, threads: list) -> Table:
    from webmail.engine.thread_grouper import thread_summary

    table = Table(title=f"{title} ({len(threads)})", title_justify="left")
    table.add_column("Subject", style="bold")
    table.add_column("Latest sender")
    table.add_column("Messages", justify="right")
    table.add_column("Unread", justify="center")
    table.add_column("Latest date")

    for thread in threads:
        summary = thread_summary(thread)
        sender = summary.latest_sender
        if summary.latest_sender_name:
            sender = f"{summary.latest_sender_name} <{sender}>"
        table.add_row(
            summary.subject,
            sender,
            str(summary.message_count),
            "●" if summary.has_unread else "",
            summary.latest_date.strftime("%Y-%m-%d %H:%M"),
        )
    return table


@cli.command("threads")
@click.argument("batch_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Most recent records to use (default: fetch.limit from config)",
)
@click.option("--json", "as_json", is_flag=True, help="Print thread summaries as JSON")
def threads(batch_file: Path, limit: int | None, as_json: bool) -> None:
    """Classify and thread a batch of message records.

    BATCH_FILE is JSON or YAML holding message records in fetch order.
    """
    from webmail.engine.inbox import build_inbox, load_messages
    from webmail.engine.thread_grouper import thread_summary

    try:
        config = get_config()
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    records = _read_records(batch_file)
    if limit is None:
        limit = config.fetch.limit
    messages = load_messages(records[-limit:])
    inbox = build_inbox(messages, config=config)

    if as_json:
        payload = {
            bucket: [
                {
                    "id": thread.id,
                    "subject": summary.subject,
                    "latestSender": summary.latest_sender,
                    "latestSenderName": summary.latest_sender_name,
                    "messageCount": summary.message_count,
                    "hasUnread": summary.has_unread,
                    "latestDate": summary.latest_date.isoformat(),
                    "messageIds": [m.id for m in thread.messages],
                }
                for thread in bucket_threads
                for summary in [thread_summary(thread)]
            ]
            for bucket, bucket_threads in (
                ("needsResponse", inbox.needs_response),
                ("newsletters", inbox.newsletters),
            )
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(
        f"Inbox: [cyan]{len(inbox.threads)}[/cyan] threads, "
        f"[cyan]{inbox.message_count}[/cyan] messages, "
        f"[cyan]{inbox.unread_count}[/cyan] unread"
    )
    console.print(_thread_table("Needs Response", inbox.needs_response))
    console.print(_thread_table("Newsletters & Updates", inbox.newsletters))


@cli.command("classify")
@click.option("--sender", required=True, help="Sender email address")
@click.option("--subject", default="", help="Subject line")
@click.option("--body", default="", help="Message body (plain text or HTML)")
def classify(sender: str, subject: str, body: str) -> None:
    """Classify a single message as human or automated."""
    from webmail.classifier.heuristics import MessageClassifier

    try:
        config = get_config()
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    result = MessageClassifier.from_config(config.classifier).explain(sender, subject, body)
    rule = result.rule_name or "no rule matched"
    color = "blue" if result.category == "human" else "yellow"
    console.print(f"[{color}]{result.category}[/{color}] ({rule})")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
