"""
Email templates
"""
