"""StudyHub API - learning progress and completion tracking."""
