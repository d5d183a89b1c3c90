import json

ANALYSIS_SYSTEM_PROMPT = "You are a UI/UX expert specializing in design analysis and improvement."

ANALYSIS_PROMPT = """Analyze this UI design and provide specific, actionable improvements.
Focus on:
1. Visual hierarchy
2. Color scheme and contrast
3. Typography and readability
4. Layout and spacing
5. Consistency
6. Usability and accessibility

Format your response as a structured analysis with clear sections."""

DETECTION_SYSTEM_PROMPT = (
    "You are a UI component detection expert. Analyze the image and extract UI "
    "components with precise details. You ONLY respond with valid JSON."
)

DETECTION_PROMPT = """Analyze this UI design image and identify all visible UI components
(buttons, text fields, cards, headers, navigation bars, etc.).

For each component, determine its type, its position and size as percentages
(0-100) of the image width/height with x/y at the top-left corner, and its
visual properties.

Your response MUST be ONLY a valid JSON object with this structure:
{
  "components": [
    {
      "type": "button",
      "confidence": 0.95,
      "boundingBox": {"x": 10.5, "y": 25.3, "width": 20.8, "height": 5.2},
      "attributes": {
        "backgroundColor": "#4285f4",
        "textColor": "#ffffff",
        "borderRadius": 8,
        "fontSize": 16,
        "padding": "8px 16px",
        "text": "Submit",
        "state": "default"
      }
    }
  ]
}

"state" is one of default, hover, active, disabled.
Do not include explanations or any text outside the JSON object."""

GENERATION_PROMPT = "Create a modern, professional UI design with the following improvements: {improvements}"


def with_requirements(prompt: str, custom_prompt: str | None) -> str:
    """Append the user's extra instructions, if any."""
    if custom_prompt:
        return f"{prompt}\n\nAdditional requirements: {custom_prompt}"
    return prompt


def build_analysis_prompt(custom_prompt: str | None = None) -> str:
    return with_requirements(ANALYSIS_PROMPT, custom_prompt)


def build_generation_prompt(improvements: str, custom_prompt: str | None = None) -> str:
    return with_requirements(GENERATION_PROMPT.format(improvements=improvements), custom_prompt)


COMPONENT_ANALYSIS_SYSTEM_PROMPT = (
    "You are a UI design expert that analyzes UI components and suggests specific "
    "improvements. You ONLY respond with valid JSON."
)

COMPONENT_ANALYSIS_PROMPT = """Analyze these UI components and suggest specific improvements for each one:

{components}

For each component, provide:
1. Improved visual properties (colors, spacing, typography)
2. Brief reasoning for the improvements

Your response MUST be ONLY a valid JSON object with this structure:
{{
  "improvements": [
    {{
      "componentId": "component-0",
      "improvements": {{
        "backgroundColor": "#4285f4",
        "textColor": "#ffffff",
        "borderRadius": 8,
        "fontSize": 16,
        "padding": "8px 16px"
      }},
      "reasoning": "Brief explanation of improvements"
    }}
  ]
}}

Do not include explanations or any text outside the JSON object."""


def build_component_analysis_prompt(components: list[dict]) -> str:
    return COMPONENT_ANALYSIS_PROMPT.format(components=json.dumps(components, indent=2))
