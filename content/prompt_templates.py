"""Prompt templates for content generation using LangChain."""

import base64
from typing import List

from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate


# Topic Extraction Template (the document itself is attached as a media part)
TOPIC_EXTRACTION_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an AI assistant inside an adaptive learning platform.

The user is approximately {age} years old. Tailor the educational **topic complexity** to match this age group.

Task: You must systematically extract all **Units** and their major subtopics from the document.

Specifically:
- Identify every Unit heading (e.g., "Unit 1: Number Systems") and create no more than 2-3 topics from the subtopics listed inside it.
- Do not skip any Unit, even if it's far down the document.
- Assume Units are important chapters to be captured.

Format each topic like:
"[Subtopic Name] (course-name-is) [Course Name]"

The Course Name should be the logical academic course (e.g., Mathematics).

Ensure full syllabus coverage - no missing Units.
Return strict JSON format:
{{
  "topics": [
    "Formatted Topic 1",
    "Formatted Topic 2",
    "Formatted Topic 3"
  ]
}}

Important Instructions:
- Ensure topics are age-appropriate.
- Each topic must reflect a meaningful concept from the document.
- Avoid duplication.
- Avoid overly technical language for younger learners.
- Only return the JSON. No explanations, no extra text, no commentary."""),
])

TOPIC_EXTRACTION_REQUEST = "Extract as many suitable educational topics as possible from this PDF."


# Quiz Generation Template
QUIZ_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are a quiz generator for an adaptive learning system. For each topic provided, generate exactly ONE multiple-choice question (MCQ).
Each question must have the following options:
- Option A
- Option B
- Option C
- Option D: "I don't know"

The correct answer must only be A, B, or C. Never mark D as correct.
Copy each topic string exactly as given into the "topic" field.

Return the response strictly as a JSON object with this structure:
```json
{{
  "questions": [
    {{
      "question": "Question text here",
      "topic": "Topic string as provided",
      "option_a": "First option",
      "option_b": "Second option",
      "option_c": "Third option",
      "option_d": "I don't know",
      "correct_answer": "b"
    }}
  ]
}}
```"""),

    ("human", "Generate one MCQ per topic from the following list: {topics}")
])


# Personalized Course Template
COURSE_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an expert educational course generator.

Objective: Create a personalized learning course in the domain of "{course_domain}" based on user's WEAK and STRONG topics, while aligning the course as much as possible with the user's INTERESTS.

Instructions for WEAK Topics:
- Write a detailed description (3-5 lines).
- Create 3-5 learning objectives.
- **Mandatory:** Include at least one real-world problem as a learning objective. Preferably tie it to user's interests; if not, general real-world challenge.
- Recommend exactly 3-5 resources, where:
  - **First resource must be a YouTube/video link** related to the topic.
  - **Second resource must be a book (Name + Author)**.
  - Others can be articles, podcasts, or tools.

Instructions for STRONG Topics:
- Write a brief description (1-2 lines).
- Create 1-2 learning objectives.
- Recommend 3 resources; same resource rules apply (video first, book second).

Constraints:
- Always reflect the course domain ("{course_domain}") naturally in descriptions and resource suggestions.
- If no matching video/book exists, create a realistic placeholder.
- Produce one module per listed topic; produce no module for a topic category marked "None".
- Copy each listed topic string exactly into the "topic" field of its module.
- Strictly output valid JSON with this structure, no extra explanation, no commentary:
{{
  "course_title": "Course title",
  "weak_modules": [{{"topic": "...", "description": "...", "learning_objectives": ["..."], "recommended_resources": ["...", "...", "..."]}}],
  "strong_modules": []
}}"""),

    ("human", """Weak Topics: {weak_topics}
Strong Topics: {strong_topics}
User Interests: {interests}""")
])


def _join_or_none(items: List[str]) -> str:
    return ", ".join(items) if items else "None"


def build_topic_extraction_messages(age: int, document: bytes, mime_type: str = "application/pdf") -> List[BaseMessage]:
    """System instructions plus a user turn carrying the document bytes."""
    messages = TOPIC_EXTRACTION_PROMPT.format_messages(age=age)
    messages.append(HumanMessage(content=[
        {"type": "text", "text": TOPIC_EXTRACTION_REQUEST},
        {
            "type": "media",
            "mime_type": mime_type,
            "data": base64.b64encode(document).decode("ascii"),
        },
    ]))
    return messages


def build_quiz_messages(topics: List[str]) -> List[BaseMessage]:
    return QUIZ_PROMPT.format_messages(topics=", ".join(topics))


def build_course_messages(
    course_domain: str,
    weak_topics: List[str],
    strong_topics: List[str],
    interests: List[str],
) -> List[BaseMessage]:
    return COURSE_PROMPT.format_messages(
        course_domain=course_domain,
        weak_topics=_join_or_none(weak_topics),
        strong_topics=_join_or_none(strong_topics),
        interests=_join_or_none(interests),
    )
