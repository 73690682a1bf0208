from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ticket_agent.cost import estimate_tokens

from .llm_base import LLMAdapter, LLMOptions, LLMResponse


@dataclass
class MockAdapter(LLMAdapter):
    model: str = "mock"

    def complete(
        self, system_prompt: str, user_prompt: str, options: Optional[LLMOptions] = None
    ) -> LLMResponse:
        payload = self._build_payload(system_prompt, user_prompt)
        raw_text = json.dumps(payload)
        return LLMResponse(
            raw_text=raw_text,
            tokens_in=estimate_tokens(system_prompt + user_prompt),
            tokens_out=estimate_tokens(raw_text),
            model=self.model,
        )

    def _build_payload(self, system_prompt: str, user_prompt: str) -> Dict:
        if "ticket_batch" in system_prompt:
            return self._ticket_batch(user_prompt)
        if "ticket_validation" in system_prompt:
            return {"valid": True, "issues": []}
        if "ticket_edit" in system_prompt:
            return {"toRemove": [], "toAddOrUpdate": []}
        return {
            "projectName": "Mock Task Tracker",
            "summary": "A web application where small teams track tasks and deadlines.",
            "goals": ["Give teams a shared view of their work", "Reduce missed deadlines"],
            "constraints": ["Must run on a managed cloud platform"],
            "features": [
                "User authentication",
                "Task board with drag and drop",
                "Due date reminders by email",
                "Team dashboard",
            ],
            "stakeholders": ["Team leads", "Individual contributors"],
            "techHints": ["Python backend", "PostgreSQL database"],
        }

    def _ticket_batch(self, user_prompt: str) -> Dict:
        batch_match = re.search(r"BATCH (\d+) of (\d+)", user_prompt)
        batch_number = int(batch_match.group(1)) if batch_match else 1
        features = re.findall(r"^\d+\. (.+)$", user_prompt, flags=re.MULTILINE)
        count = max(len(features) * 3, 5)
        tickets: List[Dict] = []
        for index in range(1, count + 1):
            feature = features[(index - 1) % len(features)] if features else "Project setup"
            tickets.append(
                {
                    "id": f"TICKET-{batch_number:02d}{index:02d}",
                    "title": f"{feature}: task {index}",
                    "description": f"Implement part {index} of {feature}.",
                    "acceptanceCriteria": [f"{feature} works end to end"],
                    "effortPoints": 3,
                    "useCase": feature,
                    "priority": "P2",
                    "labels": ["mock"],
                    "dependencies": [],
                }
            )
        payload: Dict = {"tickets": tickets}
        if batch_number == 1:
            payload["justification"] = {
                "pros": ["Small, independently shippable tickets"],
                "cons": ["More coordination between tickets"],
                "alternatives": ["Feature-level epics only"],
            }
        return payload
