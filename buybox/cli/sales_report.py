# buybox/cli/sales_report.py
import asyncio
import click

from buybox.services.state_store import StateStore

@click.command()
@click.argument('subject_id')
@click.option('--limit', type=int, default=20, show_default=True)
@click.option('--offset', type=int, default=0)
def sales_report(subject_id, limit, offset):
    """Print the most recent estimated sales for a subject"""

    async def _report():
        store = StateStore()
        total = await store.count_sale_events(subject_id)
        events = await store.list_sale_events(subject_id, limit=limit, offset=offset)

        if not events:
            print(f"No estimated sales recorded for {subject_id}")
            return

        print(f"Showing {len(events)} of {total} estimated sales for {subject_id}")
        for event in events:
            print(
                f"{event.occurred_at:%Y-%m-%d %H:%M:%S}  {event.item_id:<12} "
                f"{event.holder_id:<16} {event.stock_before:>4} -> {event.stock_after:<4} "
                f"({event.units_estimated} sold)"
            )

    asyncio.run(_report())

if __name__ == "__main__":
    sales_report()
