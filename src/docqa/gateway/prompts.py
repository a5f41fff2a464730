"""Prompt templates for summaries and multi-document question answering."""

from __future__ import annotations

from langchain_core.prompts import PromptTemplate

_SUMMARY_TEMPLATE = """
You are an expert document analyzer tasked with providing comprehensive summaries.

CRITICAL INSTRUCTIONS:
1. Analyze ALL documents provided below carefully
2. Create a comprehensive summary that covers information from ALL documents
3. Organize your summary by document or by topic areas
4. If documents are related, highlight connections and common themes
5. If documents cover different topics, provide separate sections for each
6. Mention the document names when referencing specific information

DOCUMENTS TO ANALYZE:
{context}

Please provide a comprehensive summary covering all the documents above:
""".strip()

_QUESTION_TEMPLATE = """
You are an expert document analyzer answering questions based on multiple documents.

CRITICAL INSTRUCTIONS:
1. Search through ALL the documents provided below thoroughly
2. Answer the question using information from ALL relevant documents
3. When referencing information, mention which specific document it came from
4. If information is found in multiple documents, mention all relevant sources
5. If the answer requires combining information from multiple documents, do so clearly
6. If the information is not found in any document, state this explicitly

DOCUMENTS TO SEARCH:
{context}

QUESTION TO ANSWER: {question}

Please provide a comprehensive answer based on ALL the documents above:
""".strip()

SUMMARY_PROMPT = PromptTemplate.from_template(_SUMMARY_TEMPLATE)
QUESTION_PROMPT = PromptTemplate.from_template(_QUESTION_TEMPLATE)


def build_summary_prompt(context: str) -> str:
    return SUMMARY_PROMPT.format(context=context)


def build_question_prompt(question: str, context: str) -> str:
    return QUESTION_PROMPT.format(context=context, question=question.strip())
