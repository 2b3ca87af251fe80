"""SkillMatch: CV review and certification chat assistant."""
