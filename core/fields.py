from rest_framework import serializers

from core.phone import InvalidPhoneNumber, normalize_phone_number

# Width of the phone_number columns on Business and Customer
PHONE_NUMBER_MAX_LENGTH = 20


class PhoneNumberField(serializers.CharField):
    """
    Accepts any human-entered phone format and yields the normalized form.
    The length limit applies to the normalized value.
    """

    default_error_messages = {
        "invalid_phone": "Please provide a valid phone number.",
    }

    def __init__(self, **kwargs):
        kwargs.setdefault("max_length", PHONE_NUMBER_MAX_LENGTH)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return normalize_phone_number(value)
        except InvalidPhoneNumber:
            self.fail("invalid_phone")
