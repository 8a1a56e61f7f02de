"""Output sinks for streamed records.

Records are serialized as they are produced, so a read never has to hold
the whole sheet in memory to write it out.
"""

from fast_sheet_reader.output.sinks import JsonArraySink, RowSink, create_sink

__all__ = ["JsonArraySink", "RowSink", "create_sink"]
