from gradeguard.feedback.models import FeedbackSourceContext, SanitizedFeedback
from gradeguard.feedback.personalization import extract_first_name, personalize_feedback_summary
from gradeguard.feedback.sanitizer import sanitize_feedback

__all__ = [
    "FeedbackSourceContext",
    "SanitizedFeedback",
    "extract_first_name",
    "personalize_feedback_summary",
    "sanitize_feedback",
]
