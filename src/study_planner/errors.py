"""Exception hierarchy for the study planner."""


class StudyPlannerError(Exception):
    """Base exception for all study planner errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(StudyPlannerError):
    """Invalid input to a planner operation."""


class InvalidReviewError(ValidationError):
    """A review completion that would break the in-order review sequence."""

    def __init__(self, topic_id: str, review_index: int, reason: str) -> None:
        self.topic_id = topic_id
        self.review_index = review_index
        self.reason = reason
        super().__init__(f"Cannot complete review {review_index + 1} of topic {topic_id}: {reason}")


class NotFoundError(StudyPlannerError):
    """Requested record does not exist."""


class TopicNotFoundError(NotFoundError):
    def __init__(self, topic_id: str) -> None:
        self.topic_id = topic_id
        super().__init__(f"Topic {topic_id} not found")


class SubjectNotFoundError(NotFoundError):
    def __init__(self, subject: str) -> None:
        self.subject = subject
        super().__init__(f"Subject '{subject}' not found")


class PersistenceError(StudyPlannerError):
    """The backing store rejected a read or write."""
