"""Project-wide constants."""

# -- Provider defaults ------------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_RETRY_DELAY: float = 2.0

OPENAI_BASE_URL: str = "https://api.openai.com/v1"
GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
OLLAMA_BASE_URL: str = "http://localhost:11434"
HUGGINGFACE_BASE_URL: str = "https://api-inference.huggingface.co"

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_FETCH_BATCH_SIZE: int = 100
# NCBI allows 3 requests/second without an API key and 10 with one.
NCBI_RATE_NO_KEY: float = 3.0
NCBI_RATE_WITH_KEY: float = 10.0
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

# -- Cache ------------------------------------------------------------------
CACHE_TTL_HOURS: int = 24

# -- Prompts ----------------------------------------------------------------
MEDICAL_SYSTEM_PROMPT: str = (
    "You are a medical AI assistant for healthcare professionals. Your role is to:\n"
    "1. Provide evidence-based medical information\n"
    "2. Suggest relevant diagnostic considerations\n"
    "3. Discuss treatment options based on current guidelines\n"
    "4. Help with clinical decision-making\n"
    "5. Reference medical literature when appropriate\n\n"
    "IMPORTANT DISCLAIMERS:\n"
    "- You are an assistant tool, not a replacement for clinical judgment\n"
    "- Always recommend consulting with colleagues or specialists when appropriate\n"
    "- Emphasize the importance of patient safety and standard medical practices\n"
    "- Do not provide specific dosing without recommending verification\n\n"
    "SAFETY PROTOCOLS:\n"
    "- If emergency symptoms are described, immediately recommend urgent medical evaluation\n"
    "- For medication queries, always suggest verifying with a clinical pharmacist\n"
    "- When uncertain, clearly state limitations and recommend further consultation"
)

MEDICAL_DISCLAIMER: str = (
    "This AI-generated information is for clinical decision support only. "
    "Always consult with qualified healthcare professionals for definitive "
    "medical decisions."
)

MEDICAL_CONTEXT_LABEL: str = "Medical context:"

SUMMARY_SYSTEM_PROMPT: str = (
    "You are a medical expert that summarizes research articles for "
    "healthcare professionals."
)
SUMMARY_PROMPT: str = (
    "Summarize this medical article in 2-3 sentences for healthcare professionals, "
    "focusing on key findings and clinical relevance:\n\n"
    "Title: {title}\n\nAbstract: {abstract}\n\nSummary:"
)
SUMMARY_TEMPERATURE: float = 0.3
SUMMARY_MAX_TOKENS: int = 200

QUESTIONS_SYSTEM_PROMPT: str = (
    "Generate concise, clinically relevant follow-up questions. "
    "Return only the questions, one per line."
)
QUESTIONS_PROMPT: str = (
    "Based on this medical conversation, suggest 3 relevant follow-up "
    "questions:\n\n{conversation}\n\nQuestions:"
)
DEFAULT_FOLLOW_UP_QUESTIONS: tuple[str, ...] = (
    "What additional symptoms should I look for?",
    "When should the patient seek immediate medical attention?",
    "What lifestyle modifications might be helpful?",
)

# -- Emergency short-circuit ------------------------------------------------
EMERGENCY_KEYWORDS: str = (
    "chest pain,difficulty breathing,shortness of breath,severe bleeding,"
    "unconscious,stroke symptoms,cardiac arrest,anaphylaxis,"
    "severe allergic reaction,severe trauma,overdose,seizure,heart attack"
)
EMERGENCY_RESPONSE: str = (
    "EMERGENCY SITUATION DETECTED\n\n"
    "This appears to describe a potential medical emergency. Please:\n"
    "1. Call emergency services immediately (911/999)\n"
    "2. Seek immediate medical attention\n"
    "3. Do not delay treatment\n\n"
    "This AI cannot provide emergency medical care. Professional medical "
    "evaluation is urgently required."
)

# -- Specialties (keys are Specialty values) --------------------------------
SPECIALTY_PROMPTS: dict[str, str] = {
    "cardiology": (
        "Focus on cardiovascular conditions, cardiac risk factors, ECG "
        "interpretation, and heart failure management. Consider ASCVD risk, "
        "CHA2DS2-VASc scoring, and current ACC/AHA guidelines."
    ),
    "neurology": (
        "Emphasize neurological examination findings, differential diagnosis "
        "of neurological symptoms, stroke protocols, and NIHSS scoring."
    ),
    "psychiatry": (
        "Consider mental health assessments, psychiatric medications, suicide "
        "risk evaluation, and safety assessments."
    ),
    "pediatrics": (
        "Apply pediatric-specific considerations, age-appropriate dosing, "
        "developmental factors, and pediatric vital sign norms."
    ),
    "geriatrics": (
        "Consider geriatric syndromes, polypharmacy interactions, age-related "
        "physiological changes, and fall risk assessments."
    ),
    "emergency": (
        "Focus on emergency triage, rapid assessment protocols, emergency "
        "procedures, and time-sensitive interventions."
    ),
    "family": (
        "Consider primary care management, preventive care guidelines, family "
        "dynamics, and comprehensive care coordination."
    ),
    "internal": (
        "Focus on internal medicine conditions, complex medical management, "
        "and multisystem disease interactions."
    ),
}

SPECIALTY_VOCABULARY: dict[str, frozenset[str]] = {
    "cardiology": frozenset(
        {
            "cardiac", "cardiovascular", "heart", "coronary", "arrhythmia",
            "atrial", "fibrillation", "hypertension", "myocardial", "infarction",
            "ecg", "angina", "heart failure",
        }
    ),
    "neurology": frozenset(
        {
            "neurology", "neurological", "stroke", "seizure", "epilepsy",
            "headache", "migraine", "dementia", "alzheimer", "parkinson",
            "multiple sclerosis", "brain",
        }
    ),
    "psychiatry": frozenset(
        {
            "psychiatric", "psychiatry", "depression", "anxiety", "schizophrenia",
            "bipolar", "suicide", "mental health", "antidepressant",
        }
    ),
    "pediatrics": frozenset(
        {
            "pediatric", "paediatric", "child", "children", "infant", "neonatal",
            "adolescent", "newborn",
        }
    ),
    "geriatrics": frozenset(
        {
            "geriatric", "elderly", "older adults", "aged", "frailty", "falls",
            "polypharmacy", "dementia",
        }
    ),
    "emergency": frozenset(
        {
            "emergency", "trauma", "sepsis", "resuscitation", "triage",
            "critical care", "shock", "cardiac arrest",
        }
    ),
    "family": frozenset(
        {
            "primary care", "family medicine", "general practice", "prevention",
            "screening", "vaccination",
        }
    ),
    "internal": frozenset(
        {
            "internal medicine", "diabetes", "hypertension", "kidney", "renal",
            "liver", "hepatic", "infection", "comorbidity",
        }
    ),
}

# -- Relevance scoring ------------------------------------------------------
STUDY_DESIGN_TERMS: dict[str, float] = {
    "systematic review": 1.0,
    "meta-analysis": 1.0,
    "randomized": 0.7,
    "randomised": 0.7,
    "clinical trial": 0.7,
    "guideline": 0.6,
    "recommendation": 0.5,
}
RECENCY_HALF_LIFE_YEARS: float = 5.0

STOPWORDS: frozenset[str] = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
        "into", "is", "it", "of", "on", "or", "the", "to", "with", "without",
        "vs", "versus",
    }
)

# -- Mock provider ----------------------------------------------------------
MOCK_RESPONSES: dict[str, str] = {
    "diabetes": (
        "Diabetes is a chronic condition affecting blood sugar levels. Common "
        "symptoms include increased thirst, frequent urination, and fatigue. "
        "Please consult with a healthcare provider for proper diagnosis and "
        "treatment."
    ),
    "hypertension": (
        "Hypertension (high blood pressure) is often called the 'silent killer' "
        "as it may have no symptoms. Regular monitoring and lifestyle "
        "modifications are important. Please consult with a healthcare "
        "provider for evaluation."
    ),
    "medication": (
        "For medication-related questions, please consult with a pharmacist or "
        "healthcare provider. They can provide information about drug "
        "interactions, dosing, and side effects specific to your situation."
    ),
}
MOCK_DEFAULT_RESPONSE: str = (
    "I understand you have a medical question. I recommend consulting with a "
    "healthcare professional who can provide personalized medical advice "
    "based on your specific situation."
)
