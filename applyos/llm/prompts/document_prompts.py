# Prompts for resume parsing, document reports and job matching

DOCUMENT_PARSE_PROMPT = """You are an assistant that extracts structured data from resumes and documents.

Document content:
{document_text}

Task: Extract the following information and return it as a JSON object:
- education: list of objects with institution, degree, field, start_date, end_date, description
- experience: list of objects with company, role, start_date, end_date, description
- skills: object with technical, soft and other lists of strings
- summary: one or two sentences describing the candidate

Use null for anything the document does not state. Return only the JSON object:
{{
  "education": [],
  "experience": [],
  "skills": {{"technical": [], "soft": [], "other": []}},
  "summary": ""
}}"""


DOCUMENT_REPORT_PROMPT = """You are an expert career advisor reviewing an application document.

Document:
{document_text}

Task:
1. Identify the document type (resume, cv, transcript, cover_letter or other)
2. Score the document overall from 0 to 100
3. Write a two to three sentence overall assessment
4. Score 3-6 categories relevant to the document type (for resumes: formatting, impact, skills, experience, education, ats_compatibility), each with 2-3 strengths and 2-3 concrete improvements

Return ONLY a JSON object with this structure:
{{
  "documentType": "resume",
  "overallScore": 0,
  "overallAssessment": "",
  "categories": [
    {{"name": "", "score": 0, "strengths": [], "improvements": []}}
  ]
}}"""


RESUME_MATCH_PROMPT = """You are an expert technical recruiter. Compare the candidate resume with the job description.

JOB DESCRIPTION:
{job_description}

RESUME:
{resume_text}

Return ONLY a JSON object with this structure:
{{
  "score": 0,
  "summary": "",
  "strengths": [],
  "gaps": [],
  "missingKeywords": [],
  "recommendations": []
}}

score is a 0-100 fit estimate. strengths and gaps cite the resume; recommendations are specific edits."""


COMPATIBILITY_PROMPT = """You are an expert career coach and ATS optimization specialist. Analyze the match between the following Job Description and Candidate Resume.

JOB DESCRIPTION:
{job_description}

CANDIDATE RESUME:
{resume_text}

Task:
1. Calculate a match score from 0 to 100 based on skills, experience, and keywords.
2. Identify 3-5 specific, actionable tips to improve the resume for this specific job.
3. List important keywords from the JD that are missing or under-emphasized in the resume.
4. Write a one-sentence summary of the fit.

Return ONLY a raw JSON object with this exact structure (no markdown, no explanations):
{{
    "score": 0,
    "tips": [],
    "missingKeywords": [],
    "summary": ""
}}"""
