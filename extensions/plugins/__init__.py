"""Database driver adapters (Executor implementations)"""
