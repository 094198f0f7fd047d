"""Module entrypoint for ``python -m lazylog``.

Helpers re-invoke the program this way, so module mode must behave exactly
like the console script. All dispatch happens in ``lazylog.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
