"""CodeQuest student onboarding and first-login activation service."""
