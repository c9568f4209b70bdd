"""Loan schedule engine: due-date cursor, payment splitter, materializer."""
