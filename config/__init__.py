"""SQLWeave configuration"""
