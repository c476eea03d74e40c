"""Core infrastructure: configuration-bound security, database, errors"""
