"""
Office locations module.

Offices tag projects and drive badge colours in the project list and the
financial report.
"""
