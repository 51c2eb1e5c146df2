"""Teacher analytics module.

Provides:
- Lesson completion rates and dropoff distribution
- Weekly active students
- Quiz performance
"""

from .service import AnalyticsService, analytics_cache_key


__all__ = ["AnalyticsService", "analytics_cache_key"]
