"""
TortShark Campaign Analyst.

Changelog impact analysis, portfolio aggregation and streamed AI reports
for mass-tort lead generation campaigns.
"""

__version__ = "1.0.0"
