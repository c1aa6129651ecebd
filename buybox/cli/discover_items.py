# buybox/cli/discover_items.py
import asyncio
import click

from buybox.core.exceptions import NotFoundError
from buybox.core.logging_config import configure_logging
from buybox.services.item_discovery import ItemDiscoveryService

@click.command()
@click.argument('subject_id')
@click.option('--seller-id', default=None, help='Refresh a single seller instead of all of them')
@click.option('--stats', is_flag=True, help='Only print the current item counts')
def discover_items(subject_id, seller_id, stats):
    """Populate a subject's tracked items from its sellers' listings"""
    configure_logging()

    async def _discover():
        service = ItemDiscoveryService()

        if stats:
            item_stats = await service.get_item_stats(subject_id)
            print(f"{item_stats.total_items} items across {item_stats.total_sellers} sellers")
            for label, count in item_stats.items_per_seller.items():
                print(f"  {label}: {count}")
            return

        if seller_id:
            try:
                result = await service.refresh_seller_items(subject_id, seller_id)
            except NotFoundError as e:
                raise click.ClickException(str(e))
            print(f"{result['seller_label']}: removed {result['deleted_count']}, stored {result['new_count']}")
            return

        result = await service.fetch_all_subject_items(subject_id)
        for seller in result["sellers"]:
            print(f"  {seller['seller_label']}: {seller['item_count']}")
        print(f"Stored {result['total_items']} items across {result['total_sellers']} sellers")

    asyncio.run(_discover())

if __name__ == "__main__":
    discover_items()
