"""
Client for AI patient risk assessment backed by the Gemini REST API.
"""
import json
import logging

import requests
from django.conf import settings

from records.models import Patient

logger = logging.getLogger(__name__)

GEMINI_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

RISK_PROMPT = """As a healthcare AI specialist, analyze this patient's data and provide a detailed risk assessment:

PATIENT PROFILE:
- Age: {age}
- Gender: {gender}
- Primary Diagnosis: {diagnosis}
- Current Status: {status}

VITAL SIGNS:
- Blood Pressure: {bp}
- Heart Rate: {hr} bpm
- Temperature: {temp} F
- Oxygen Saturation: {spo2}%

MEDICAL HISTORY:
{history}

Please provide the assessment in this exact JSON format:
{{
  "riskScore": [0-100 numerical score],
  "riskLevel": "[LOW|MEDIUM|HIGH|CRITICAL]",
  "riskFactors": ["factor1", "factor2"],
  "clinicalConcerns": ["concern1", "concern2"],
  "recommendations": ["recommendation1", "recommendation2"],
  "monitoringPriority": "[ROUTINE|ENHANCED|INTENSIVE]",
  "predictedComplications": [
    {{"complication": "name", "probability": "percentage", "timeframe": "when"}}
  ],
  "interventionSuggestions": ["intervention1", "intervention2"]
}}

IMPORTANT: Respond only with valid JSON, no markdown formatting."""


def build_risk_prompt(patient: Patient) -> str:
    vitals = patient.vitals if isinstance(patient.vitals, dict) else {}
    history = patient.history if isinstance(patient.history, list) else []
    return RISK_PROMPT.format(
        age=f'{patient.age} years' if patient.age is not None else 'Not recorded',
        gender=patient.gender or 'Not recorded',
        diagnosis=patient.diagnosis or 'Not recorded',
        status=patient.status,
        bp=vitals.get('bloodPressure') or 'Not recorded',
        hr=vitals.get('heartRate') or 'Not recorded',
        temp=vitals.get('temperature') or 'Not recorded',
        spo2=vitals.get('oxygenSaturation') or 'Not recorded',
        history=', '.join(str(h) for h in history) if history else 'No significant history recorded',
    )


def ask_gemini_json(prompt: str) -> dict:
    if not settings.INSIGHTS_ENABLE:
        raise RuntimeError('AI insights not enabled on server')
    url = GEMINI_URL.format(model=settings.GEMINI_MODEL)
    body = {
        'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
        'generationConfig': {'responseMimeType': 'application/json'},
    }
    r = requests.post(url, params={'key': settings.GEMINI_API_KEY}, json=body, timeout=settings.INSIGHTS_TIMEOUT)
    r.raise_for_status()
    data = r.json()
    try:
        text = data['candidates'][0]['content']['parts'][0]['text']
    except (KeyError, IndexError, TypeError):
        raise RuntimeError('Invalid response from Gemini: missing candidate text')
    text = text.replace('```json', '').replace('```', '').strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        logger.warning("Gemini returned non-JSON text (%d chars)", len(text))
        raise RuntimeError('Invalid response from Gemini: answer is not JSON')
    if not isinstance(parsed, dict):
        raise RuntimeError('Invalid response from Gemini: expected a JSON object')
    return parsed


def assess_patient_risk(patient: Patient) -> dict:
    return ask_gemini_json(build_risk_prompt(patient))
