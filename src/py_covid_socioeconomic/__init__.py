"""
py-covid-socioeconomic: COVID-19 outcomes joined with World Bank indicators.
"""

__version__ = "0.1.0"
