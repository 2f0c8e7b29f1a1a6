"""Client rating rule shared by the lifecycle and the appointment store."""

from clinic_backend.core.errors import ValidationError

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError('Rating must be a whole number.')
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f'Rating must be between {MIN_RATING} and {MAX_RATING}.')
    return rating
