"""
stormrank package
=================

Ranks storm event types by their impact on population health and on the
economy, from the NOAA storm data extract.

- The CLI entry point is in `stormrank/cli.py`.
- Damage decoding (exponent code -> US$) is in `stormrank/normalize.py`.
- Aggregation and ranking are in `stormrank/engine.py`.
- Dataset download/loading is in `stormrank/loader.py`.
- Tables, charts and the DOCX report are in `stormrank/report.py`.
"""

__version__ = '0.1.0'
