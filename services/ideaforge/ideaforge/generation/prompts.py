# ============================================================================
# MOCKUP PROMPT: Industrial design rendering from a rough sketch
# ============================================================================

MOCKUP_PROMPT_TEMPLATE = """
Act as a professional industrial designer and visualization expert.
Take the provided rough sketch and the user's description: "{description}".

Task: Create a high-fidelity, photorealistic product mockup.
- Maintain the composition and perspective of the sketch.
- Apply the materials, colors, and lighting implied by the description.
- Fix perspective errors and clean up lines to look like a manufactured object.
- Render it on a clean, professional studio background.
"""

EMPTY_PROMPT_MESSAGE = "Please describe your product idea in the text box."
NO_IMAGE_MESSAGE = "No image generated. Try adjusting your description."
GENERIC_FAILURE_MESSAGE = "Failed to generate mockup. Please try again or simplify your request."


def build_mockup_prompt(description: str) -> str:
    return MOCKUP_PROMPT_TEMPLATE.format(description=description.strip())
