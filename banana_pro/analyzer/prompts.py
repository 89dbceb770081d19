"""
发送给视觉模型的提示词
"""

_BILINGUAL = '{"en":"", "vi":""}'


def analysis_prompt(has_sketch: bool = False) -> str:
    """整体分析：风格 / 材质 / 光线 / 场景 / 构图 / 生成提示词"""
    prompt = "Role: Architectural Photographer & Prompt Engineer. Analyze images. Return JSON."
    if has_sketch:
        prompt += " Create 'sketchPrompt' to render the sketch based on references."
    fields = ["style", "materials", "lighting", "context", "composition", "generationPrompt"]
    if has_sketch:
        fields.append("sketchPrompt")
    body = ", ".join(f'"{f}": {_BILINGUAL}' for f in fields)
    return prompt + f" JSON: {{ {body} }}"


def single_field_prompt(field: str) -> str:
    return f'Analyze ONLY: {field}. Return JSON: {{ "{field}": {{ "en": "...", "vi": "..." }} }}'


def multi_view_prompt(count: int) -> str:
    return (
        f"Generate {count} distinct camera angle prompts for this project.\n"
        'Output JSON: { "multiViewPrompts": { "en": [{ "angle": "Title", "content": "...", '
        '"composition": "...", "lighting": "..." }], "vi": [...] } }'
    )


def custom_angle_prompt(request: str) -> str:
    return (
        f'Generate 1 detailed prompt for angle: "{request}". Follow annotations if any.\n'
        'Output JSON: { "en": { "title": "...", "content": "...", "composition": "...", '
        '"lighting": "..." }, "vi": { ... } }'
    )


def object_dna_prompt(lang: str = "en") -> str:
    lang_instruction = "VIETNAMESE" if lang == "vi" else "ENGLISH"
    return f"""
Role: Senior Architectural Technical Analyst.
Task: Analyze the provided images to extract the "Visual DNA" of the object/building.
Focus on:
1. Architectural Style & Form.
2. Material Palette & Textures.
3. Key Distinctive Features (Windows, Roof, Ornamentation).
4. Color Consistency.

Goal: Create a reference description that ensures future generated angles look exactly like this object.

Output strictly valid JSON:
{{
    "analysis": "Full detailed technical description in {lang_instruction}..."
}}
""".strip()


NOTES_PROMPT = (
    "Analyze the handwritten or printed notes/text on this image. Transcribe strictly into "
    "Vietnamese (if it's not already VI, translate it to VI). Also provide an English translation. "
    'Return only JSON: { "vi": "...", "en": "..." }'
)


def translate_prompt(text: str) -> str:
    return (
        "Translate the following text to English if it is Vietnamese, or to Vietnamese if it is "
        "English. Maintain the tone and style. Return ONLY the translated text.\n\n"
        f"Text: {text}"
    )
