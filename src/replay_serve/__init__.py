"""
Local preview server for generated session transcripts.

Serves a finished, read-only directory of HTML/Markdown output over plain HTTP
on localhost, with path traversal protection and ETag based revalidation.
"""

__version__ = "0.1.0"
