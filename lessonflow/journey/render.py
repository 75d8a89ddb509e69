"""Displayable views of challenge evaluations."""

from __future__ import annotations

import html
from typing import List

from .evaluation import ChallengeEvaluation, Outcome

_MARKERS = {
    Outcome.SUCCESS: "[pass]",
    Outcome.PARTIAL_SUCCESS: "[partial]",
    Outcome.FAILURE: "[fail]",
}


class EvaluationView:
    """Wraps an evaluation so kernels and notebooks can display it."""

    def __init__(self, evaluation: ChallengeEvaluation) -> None:
        self.evaluation = evaluation

    def _repr_html_(self) -> str:
        evaluation = self.evaluation
        title = html.escape(evaluation.challenge_name or "Challenge")
        parts: List[str] = [
            f'<details class="lessonflow-evaluation {evaluation.outcome.value}" open>',
            f"<summary>{_MARKERS[evaluation.outcome]} {title}: {html.escape(evaluation.reason)}</summary>",
        ]
        if evaluation.rule_evaluations:
            parts.append("<ul>")
            for rule in evaluation.rule_evaluations:
                line = f"{_MARKERS[rule.outcome]} {html.escape(rule.name)}"
                if rule.reason:
                    line += f": {html.escape(rule.reason)}"
                parts.append(f"<li>{line}</li>")
            parts.append("</ul>")
        if evaluation.hint:
            parts.append(f'<p class="hint">Hint: {html.escape(evaluation.hint)}</p>')
        if evaluation.message:
            parts.append(f'<p class="message">{html.escape(evaluation.message)}</p>')
        parts.append("</details>")
        return "".join(parts)

    def __str__(self) -> str:
        evaluation = self.evaluation
        lines = [f"{_MARKERS[evaluation.outcome]} {evaluation.challenge_name or 'Challenge'}: {evaluation.reason}"]
        for rule in evaluation.rule_evaluations:
            suffix = f": {rule.reason}" if rule.reason else ""
            lines.append(f"  {_MARKERS[rule.outcome]} {rule.name}{suffix}")
        if evaluation.hint:
            lines.append(f"  Hint: {evaluation.hint}")
        if evaluation.message:
            lines.append(evaluation.message)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"EvaluationView({self.evaluation.challenge_name!r}, {self.evaluation.outcome.value})"


def render_evaluation(evaluation: ChallengeEvaluation) -> EvaluationView:
    return EvaluationView(evaluation)


__all__ = ["EvaluationView", "render_evaluation"]
