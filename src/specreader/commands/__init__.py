"""Built-in CLI sub-commands for specreader.

* :mod:`~specreader.commands.inspect` -- examine the info, operations, and
  schema locations the reader produces for a document.
"""
