"""FinSmart authentication backend"""
