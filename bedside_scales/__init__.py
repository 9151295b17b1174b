"""
Bedside Scales

Standardized bedside severity and risk scores (consciousness, fall risk,
sedation depth, early warning) computed from categorical observations,
with a local history of saved results.
"""

__version__ = "0.1.0"
