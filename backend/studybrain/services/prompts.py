"""Prompt templates for the PDF and video assistants."""
import json

from studybrain.utils.time_utils import format_duration

NO_TEXT = "No text available."

PDF_CHAT_SYSTEM = """You are an expert educational content analyst and study assistant. You help students understand PDF content by summarizing, explaining, and answering questions.

When given page text from a PDF, you should:
- Provide clear, concise summaries
- Explain complex concepts in simple terms
- Highlight key points and important information
- Answer questions about the content accurately
- Use bullet points and structured formatting when helpful
- If the text seems like a table of contents or index, help navigate the content
- Always respond in a helpful, encouraging tone suitable for students

Current page text:
{page_text}"""

TRANSLATE_SYSTEM = """Translate the following text into simple, easy-to-understand {language}. Stay strictly within the content of the text. Do not add extra information, headings, or elaborate breakdowns. If a sentence is complex, rephrase it simply in {language}. Just give the translated text with brief one-line clarification only where absolutely needed.

Text:
{page_text}"""

QUIZ_SYSTEM = """You are an expert quiz generator for students. Based on the following page text, generate exactly {num_questions} questions to test the student's understanding. Use only these question types: {question_types}.

Rules per type:
- mcq: exactly 4 options, one correct
- true_false: options "True" and "False"
- fill_blank: a sentence with ___ for the missing part
- multiple_correct: 4 options, correctAnswer lists every correct option separated by ", "
- short: a one or two sentence answer

Generate questions in {language}.

Page text (pages {page_from}-{page_to}):
{page_text}"""

CHECK_ANSWERS_SYSTEM = """You are an expert educator. The student answered quiz questions based on a page. Evaluate each answer, give a score out of the total, and provide brief explanations for wrong answers. Respond in {language}.

Page text for reference:
{page_text}

Student's answers:
{answers}"""

VIDEO_CHAT_SYSTEM = """You are an AI teaching assistant helping a student understand a YouTube lecture video. You have access to the video's transcript with timestamps.

{context}

INSTRUCTIONS:
- Answer the student's questions about what the instructor is teaching
- If they ask "what is he doing?" or "explain this", refer to the transcript content around the current timestamp
- If they set a time range, focus your explanation on that specific section
- Explain concepts in simple terms, use examples when helpful
- Respond in the language the student uses
- Be encouraging and supportive like a friendly tutor
- Use markdown formatting for clarity
- If transcript is not available, let the student know and ask them to describe what they see"""

# seconds of transcript either side of the playhead
NEARBY_WINDOW = 120


def language_name(language: str | None) -> str:
    if not language:
        return "English"
    return language.strip().capitalize()


def quiz_tool(question_types: list[str]) -> dict:
    """Function tool whose arguments are the structured question set."""
    return {
        "type": "function",
        "function": {
            "name": "generate_quiz",
            "description": "Generate quiz questions based on page content",
            "parameters": {
                "type": "object",
                "properties": {
                    "questions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "number"},
                                "question": {"type": "string"},
                                "type": {"type": "string", "enum": question_types},
                                "options": {"type": "array", "items": {"type": "string"}},
                                "correctAnswer": {"type": "string"},
                            },
                            "required": ["id", "question", "type", "correctAnswer"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["questions"],
                "additionalProperties": False,
            },
        },
    }


def pdf_chat_prompt(page_text: str | None) -> str:
    return PDF_CHAT_SYSTEM.format(page_text=page_text or "No page text available.")


def translate_prompt(page_text: str | None, language: str | None) -> str:
    return TRANSLATE_SYSTEM.format(page_text=page_text or NO_TEXT, language=language_name(language))


def quiz_prompt(
    page_text: str | None,
    language: str | None,
    num_questions: int,
    question_types: list[str],
    page_from: int | None,
    page_to: int | None,
) -> str:
    return QUIZ_SYSTEM.format(
        page_text=page_text or NO_TEXT,
        language=language_name(language),
        num_questions=num_questions,
        question_types=", ".join(question_types),
        page_from=page_from or 1,
        page_to=page_to or page_from or 1,
    )


def check_answers_prompt(page_text: str | None, language: str | None, answers: list[dict]) -> str:
    return CHECK_ANSWERS_SYSTEM.format(
        page_text=page_text or NO_TEXT,
        language=language_name(language),
        answers=json.dumps(answers, ensure_ascii=False),
    )


def filter_transcript(lines: list[tuple[int, str]], start: int | None, end: int | None) -> str:
    return "\n".join(
        f"[{format_duration(t)}] {text}"
        for t, text in lines
        if (start is None or t >= start) and (end is None or t <= end)
    )


def video_chat_prompt(
    video_title: str | None,
    transcript: list[tuple[int, str]] | None,
    current_time: int | None,
    start_time: int | None = None,
    end_time: int | None = None,
) -> str:
    title = video_title or "Untitled video"
    current = current_time or 0
    if not transcript:
        context = (
            f'VIDEO TITLE: "{title}"\n'
            f"CURRENT TIMESTAMP: {format_duration(current)}\n"
            "TRANSCRIPT: Not available for this video. Answer based on the video title "
            "and the student's description of what they see."
        )
    elif start_time is not None or end_time is not None:
        context = (
            f'VIDEO TITLE: "{title}"\n'
            f"TIME RANGE: {format_duration(start_time or 0)} to {format_duration(end_time or 0)}\n\n"
            f"TRANSCRIPT FOR THIS SECTION:\n{filter_transcript(transcript, start_time, end_time)}"
        )
    else:
        nearby = filter_transcript(transcript, max(0, current - NEARBY_WINDOW), current + NEARBY_WINDOW)
        context = (
            f'VIDEO TITLE: "{title}"\n'
            f"CURRENT TIMESTAMP: {format_duration(current)}\n\n"
            f"NEARBY TRANSCRIPT (±2 min around current time):\n{nearby}\n\n"
            f"FULL TRANSCRIPT AVAILABLE: Yes ({len(transcript)} lines)"
        )
    return VIDEO_CHAT_SYSTEM.format(context=context)
