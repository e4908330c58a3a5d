import json

import click

from .production.errors import ProductionError
from .production.progress import floor_statuses
from .services import article_store, article_workflow


def register_cli(app):
    @app.cli.command("fix-data-corruption")
    @click.argument("article_id", type=int)
    @click.option("--dry-run", is_flag=True, help="Report problems without saving repairs.")
    @click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
    def fix_data_corruption(article_id: int, dry_run: bool, as_json: bool) -> None:
        """Check one article's floor ledgers and repair inconsistent quantities."""
        try:
            report = article_workflow.fix_data_corruption(article_id, dry_run=dry_run)
        except ProductionError as exc:
            click.echo(f"Error: {exc.message}", err=True)
            raise SystemExit(2) from exc

        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2, sort_keys=True, default=str))
        else:
            click.echo(f"Article {report.article_number} (id {report.article_id})")
            if not report.violations:
                click.echo("No ledger violations found.")
            for violation in report.violations:
                click.echo(f"  [{violation.rule}] {violation.floor or 'article'}: {violation.message}")
            for correction in report.corrections:
                prefix = "would fix" if dry_run else "fixed"
                click.echo(f"  {prefix} {correction.describe()}")

        if dry_run and report.violations:
            raise SystemExit(1)

    @app.cli.command("article-status")
    @click.argument("article_id", type=int)
    @click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
    def article_status(article_id: int, as_json: bool) -> None:
        """Show where an article is and how far each floor has got."""
        try:
            _record, article = article_store.load_article(article_id)
        except ProductionError as exc:
            click.echo(f"Error: {exc.message}", err=True)
            raise SystemExit(2) from exc

        floors = floor_statuses(article)
        if as_json:
            payload = {
                "article_id": article.id,
                "article_number": article.article_number,
                "status": article.status,
                "current_floor": article.current_floor,
                "progress": article.progress,
                "floors": floors,
            }
            click.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))
            return

        click.echo(
            f"Article {article.article_number}: {article.status}, "
            f"{article.progress}% complete, on {article.current_floor}"
        )
        for floor in floors:
            marker = "*" if floor["is_current"] else " "
            click.echo(
                f"{marker} {floor['floor']:<15} received {floor['received']:>6}  "
                f"completed {floor['completed']:>6}  transferred {floor['transferred']:>6}  "
                f"remaining {floor['remaining']:>6}"
            )
