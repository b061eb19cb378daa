"""
Report package: render time-entry summaries as text, Markdown, CSV, JSON or HTML.
"""
