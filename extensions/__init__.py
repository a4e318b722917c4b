"""SQLWeave extensions"""
