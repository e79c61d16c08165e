"""
Notion → Static Site Export

Exports Notion pages as Markdown files with front matter, ready to be
consumed by a static-site generator such as Hugo.
"""

__version__ = "1.0.0"
