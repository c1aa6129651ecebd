# buybox/cli/trigger_subject.py
import asyncio
import click

from buybox.core.exceptions import StoreFailureError, SubjectNotFoundError
from buybox.core.logging_config import configure_logging
from buybox.core.config import get_settings
from buybox.dependencies import build_tracker

@click.command()
@click.argument('subject_id')
@click.option('--delay', type=float, default=None, help='Seconds between items (defaults to INTER_ITEM_DELAY_SECONDS)')
def trigger_subject(subject_id, delay):
    """Run one tracking pass over a subject's items and print the summary"""
    configure_logging()

    async def _trigger():
        tracker = build_tracker(get_settings())
        if delay is not None:
            tracker.inter_item_delay = delay
        try:
            summary = await tracker.trigger_once(subject_id)
        except SubjectNotFoundError as e:
            raise click.ClickException(str(e))
        except StoreFailureError as e:
            raise click.ClickException(f"Database error: {e}")

        print(f"Subject {subject_id}: {summary.total} items")
        print(f"  processed: {summary.processed}")
        print(f"  skipped:   {summary.skipped}")
        print(f"  failed:    {summary.failed}")

    asyncio.run(_trigger())

if __name__ == "__main__":
    trigger_subject()
