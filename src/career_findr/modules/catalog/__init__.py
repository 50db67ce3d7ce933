"""
Catalog Module

Courses (institutes) and jobs (companies), the listings students apply to.

Background Jobs (via APScheduler):
- close_expired_listings: closes active listings past their deadline
"""
