"""Local server, browser session and page-file helpers."""
