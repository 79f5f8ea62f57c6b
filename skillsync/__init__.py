"""SkillSync notification delivery package."""
