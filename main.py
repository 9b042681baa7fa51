from rich.pretty import pprint

from argtree import *


@command(overview="Manage a tiny package cache")
def cache(evaluation):
    pass


@cache.command(
    options=[Option("-f", "--force", descr="skip confirmation")],
    parameters=[Parameter("path"), Parameter("target", required=False)],
)
def remove(evaluation):
    """Remove a cached path."""
    pprint(evaluation)


@cache.command(options=[Option("-o", "--output", descr="write the listing here", valued=True)])
def listing(evaluation):
    """List the cache."""
    pprint(evaluation)


if __name__ == '__main__':
    invoke(cache)
