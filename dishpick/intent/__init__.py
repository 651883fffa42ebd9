"""
Guest intent layer.

Responsibilities:
- Validate the guest's ordered question/answer pairs.
- Fold them into an immutable IntentVector of soft preferences and hard
  dietary/allergy exclusions.
- Flag dietary answers that could not be understood so the caller can ask
  the guest to confirm.
"""
