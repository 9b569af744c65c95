import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # noqa: E402

from cookpro.recipes import CatalogLoadError, load_recipes, parse_recipes, RecipeCatalog


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    p = Path(__file__).resolve().parents[1] / 'data' / 'recipes.json'
    if argv:
        p = Path(argv[0])
    if not p.exists():
        print(f'{p} not found')
        return 1
    try:
        data = load_recipes(p)
        recipes = parse_recipes(data)
    except (ValueError, CatalogLoadError) as e:
        print(f'{p}: invalid recipe document: {e}')
        return 1
    skipped = len(data) - len(recipes)
    print(f'Checked {len(recipes)} recipes ({skipped} skipped)')
    collisions = RecipeCatalog(recipes).collisions()
    for rid, names in sorted(collisions.items()):
        print(f'collision {rid}: {", ".join(names)}')
    return 1 if collisions else 0


if __name__ == '__main__':
    sys.exit(main())
