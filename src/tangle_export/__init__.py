"""
Tangle → Denormalized JSON export

A read-only batch exporter that walks the transaction metadata index of a
local tangle replica, joins every entry with its immutable transaction
record, and appends one pretty-printed JSON document per transaction to an
output file.
"""

__version__ = "0.1.0"
