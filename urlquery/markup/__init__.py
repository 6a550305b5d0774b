"""
urlquery.markup - XML and HTML responses
========================================
"""

from urlquery.markup.html import HtmlRowExtractor
from urlquery.markup.xml import XmlRowExtractor

__all__ = ["HtmlRowExtractor", "XmlRowExtractor"]
