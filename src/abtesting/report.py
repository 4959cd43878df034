"""
Analysis artifacts: analysis.json and an HTML summary.

Output goes to artifacts/experiments/<experiment_id>/.
"""

import json
import logging
from pathlib import Path

from jinja2 import Environment

from .schema import ExperimentSummary

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACTS_DIR = "artifacts/experiments"

SUMMARY_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{{ s.name }} - experiment summary</title>
  <style>
    body { font-family: sans-serif; margin: 2em; }
    table { border-collapse: collapse; }
    th, td { border: 1px solid #ccc; padding: 4px 10px; text-align: right; }
    th:first-child, td:first-child { text-align: left; }
    .sig { color: #27ae60; font-weight: bold; }
    .warn { color: #e67e22; }
  </style>
</head>
<body>
  <h1>{{ s.name }}</h1>
  <p>Experiment <code>{{ s.experiment_id }}</code> &middot;
     {{ "active" if s.is_active else "inactive" }} &middot;
     {{ s.total_visitors }} visitors &middot; {{ s.total_success_events }} success events</p>
  {% if not s.srm_passed %}
  <p class="warn">Sample ratio mismatch detected (p = {{ "%.4f"|format(s.srm_p_value) }}).
     Traffic does not follow the configured weights; do not interpret results.</p>
  {% endif %}

  <h2>Variations</h2>
  <table>
    <tr><th>Variation</th><th>Weight</th><th>Visitors</th><th>Traffic</th>
        <th>Successes</th><th>Rate</th><th>95% CI</th></tr>
    {% for v in s.variations %}
    <tr>
      <td>{{ v.stats.name }}{% if v.is_baseline %} (baseline){% endif %}</td>
      <td>{{ "%.2f"|format(v.weight) }}</td>
      <td>{{ v.stats.visitors }}</td>
      <td>{{ "%.1f"|format(v.traffic_pct) }}%</td>
      <td>{{ v.stats.successes }}</td>
      <td>{{ "%.2f"|format(v.stats.success_rate * 100) }}%</td>
      <td>{{ "%.2f"|format(v.rate_ci_low * 100) }}% - {{ "%.2f"|format(v.rate_ci_high * 100) }}%</td>
    </tr>
    {% endfor %}
  </table>

  <h2>Significance</h2>
  {% for c in s.comparisons %}
  <h3>{{ c.candidate }} vs {{ c.baseline }}</h3>
  <p>z = {{ "%.4f"|format(c.result.z_score) }}, p = {{ "%.4f"|format(c.result.p_value) }},
     uplift = {{ "%+.2f"|format(c.result.relative_uplift) }}%
     {% if c.result.is_significant %}<span class="sig">significant</span>{% endif %}</p>
  <p>{{ c.result.message }}</p>
  <p><strong>{{ c.result.recommendation }}</strong></p>
  {% if c.result.warning %}<p class="warn">{{ c.result.warning }}</p>{% endif %}
  {% else %}
  <p>No comparisons: the experiment has a single variation.</p>
  {% endfor %}
</body>
</html>
"""

_env = Environment(autoescape=True)


def save_analysis(summary: ExperimentSummary, artifacts_dir: str = DEFAULT_ARTIFACTS_DIR) -> Path:
    """Write analysis.json; returns its path."""
    out_dir = Path(artifacts_dir) / summary.experiment_id
    out_dir.mkdir(parents=True, exist_ok=True)

    path = out_dir / "analysis.json"
    with open(path, "w") as f:
        json.dump(summary.to_dict(), f, indent=2)
    logger.info(f"Analysis saved to {path}")
    return path


def render_summary_html(summary: ExperimentSummary, artifacts_dir: str = DEFAULT_ARTIFACTS_DIR) -> Path:
    """Render summary.html; returns its path."""
    out_dir = Path(artifacts_dir) / summary.experiment_id
    out_dir.mkdir(parents=True, exist_ok=True)

    html = _env.from_string(SUMMARY_TEMPLATE).render(s=summary)
    path = out_dir / "summary.html"
    path.write_text(html, encoding="utf-8")
    logger.info(f"HTML summary written to {path}")
    return path
