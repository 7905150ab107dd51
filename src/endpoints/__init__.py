"""Transfer endpoints.

This package adapts a remote search index and a line-oriented dump file
to the source and sink interfaces of the transfer pipeline.
"""
