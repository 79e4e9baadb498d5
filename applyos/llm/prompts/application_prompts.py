# Prompts for application questions, answers and cover letters

QUESTION_EXTRACTION_PROMPT = """You are an AI assistant that extracts open-ended application questions from job postings and scholarship pages.

Below is the text content extracted from a job/scholarship posting webpage:

{page_text}

CRITICAL RULES:
1. ONLY extract questions that are LITERALLY WRITTEN on the page - do NOT make up, invent, or hallucinate any questions
2. Copy the EXACT WORDING from the page - do not paraphrase or rewrite
3. Extract ALL open-ended questions that require written text responses (paragraphs, not just single words)
4. If you don't see any open-ended questions on the page, return an empty array []

WHAT IS AN OPEN-ENDED QUESTION?
Any question that requires the applicant to write at least a few sentences explaining their thoughts, experiences, or perspectives:
- "Why" questions (Why are you interested? Why do you want to work here?)
- "What" questions about experiences, motivations, or perspectives
- "How" questions about approaches or methods
- "Describe" or "Tell us about" prompts
- Cover letter or personal statement prompts

EXCLUDE basic form fields:
- Name, pronouns, contact details, addresses
- Links to resume, portfolio, GitHub, LinkedIn or websites
- University, major, graduation date, GPA
- Work authorization, visa and citizenship questions
- Start dates, availability, salary expectations
- Demographics, yes/no questions and dropdown selections

Return ONLY a JSON array of strings, for example:
["Why do you want to work here?", "Describe a challenging problem you solved."]"""


ANSWER_GENERATION_PROMPT = """You are a helpful assistant that generates professional, tailored answers to job and scholarship application questions.

Question: {question}

Context about the candidate:
{context}

Task: Generate a professional, compelling answer to the question above based on the candidate's context. The answer should be:
- Specific and tailored to the candidate's background
- Professional and well-structured
- Between 100-200 words
- Honest and authentic

Answer:"""


COVER_LETTER_PROMPT = """You are an expert career writer. Write a cover letter for the position below.

Position: {title}
Company: {company}

Job description:
{job_description}

Candidate background:
{context}

{instructions}

Requirements:
- 250-400 words, three to five paragraphs
- Reference concrete experience and skills from the candidate background
- Do not invent employers, degrees or achievements
- No placeholders such as [Your Name]; end with "Sincerely," and no signature line

Cover letter:"""
