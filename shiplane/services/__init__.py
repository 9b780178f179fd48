"""Adapters around external tools: fastlane, gh, chat webhook, brew."""
