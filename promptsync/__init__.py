"""promptsync: keep declared prompts and prompt partials in sync with a
remote admin API that can also be edited by hand."""

__version__ = "0.1.0"
