import argparse

from .config import get_settings
from .recipes import RecipeCatalog


def main(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="cookpro", description="Find recipes by the ingredients you have."
    )
    parser.add_argument("ingredients", nargs="*", help="e.g. tomato, onion")
    parser.add_argument("--source", default=settings.DATA_SOURCE)
    parser.add_argument("--limit", type=int, default=settings.DISPLAY_LIMIT)
    args = parser.parse_args(argv)

    catalog = RecipeCatalog.load(args.source, timeout=settings.FETCH_TIMEOUT)
    if catalog.error:
        print(catalog.error)
        return 1
    print(f"Loaded {len(catalog)} recipe(s).")
    matches = catalog.search(" ".join(args.ingredients))
    if not matches:
        print("No recipes found. Try different ingredients!")
        return 0
    for r in matches[: args.limit]:
        print(f"- {r.name}")
    if len(matches) > args.limit:
        print(f"... and {len(matches) - args.limit} more")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
