"""Report writers for the analysis results."""
