"""
Core - settings, database session, token handling and the Redis, email and
scheduler clients shared by every module.
"""
