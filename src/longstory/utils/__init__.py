"""
Utility modules for the long-form story generator.

Modules:
- errors: Error taxonomy and Flask error handlers
- llm_constants: Tunable generation policy
- story_prompt_builder: Opening and continuation prompts
"""
