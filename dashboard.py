"""
Decision-Tree Report Viewer

Renders the artifacts written by ``run_report.py``: for each report variant
(one sub-directory of ARTIFACTS_DIR holding a metrics.json) it shows the
score comparison of the untuned and tuned tree, the chosen hyperparameters,
and the precision-recall and tree figures inline.

Run
---
ARTIFACTS_DIR=artifacts uvicorn dashboard:app --reload --port 7860
"""

from __future__ import annotations

import html
import json
import os
from typing import Any, Dict, List

import pandas as pd
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

# -----------------------------------------------------------------------------
# Configuration (CLI via environment variables)
# -----------------------------------------------------------------------------

ARTIFACTS_DIR = os.environ.get("ARTIFACTS_DIR", "artifacts")
FIGURES = ("pr_curve.png", "tree.png")

os.makedirs(ARTIFACTS_DIR, exist_ok=True)

app = FastAPI(
    title="Decision-Tree Report Viewer",
    description="Shows scores, tuned hyperparameters and figures of the 'sick' reports.",
    version="1.0",
)

# Serve artifacts directory (metrics.json, plots, run_config.json)
app.mount("/artifacts", StaticFiles(directory=ARTIFACTS_DIR), name="artifacts")


# -----------------------------------------------------------------------------
# Utilities
# -----------------------------------------------------------------------------
def _exists(path: str) -> bool:
    return os.path.isfile(path)


def _safe_html(x: Any) -> str:
    return html.escape(str(x), quote=True)


def _load_json(path: str) -> dict:
    if not _exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _variants() -> List[str]:
    """Sub-directories of ARTIFACTS_DIR that hold a metrics.json, sorted."""
    if not os.path.isdir(ARTIFACTS_DIR):
        return []
    return sorted(
        d for d in os.listdir(ARTIFACTS_DIR)
        if _exists(os.path.join(ARTIFACTS_DIR, d, "metrics.json"))
    )


def _all_metrics() -> Dict[str, dict]:
    return {v: _load_json(os.path.join(ARTIFACTS_DIR, v, "metrics.json")) for v in _variants()}


def _html_table(df: pd.DataFrame) -> str:
    th = "<th>model</th>" + "".join(f"<th>{_safe_html(c)}</th>" for c in df.columns)
    trs = []
    for idx, r in df.iterrows():
        tds = "".join(f"<td>{_safe_html(v)}</td>" for v in r.values)
        trs.append(f"<tr><th>{_safe_html(idx)}</th>{tds}</tr>")
    return f"""
      <table class="scores">
        <thead><tr>{th}</tr></thead>
        <tbody>{''.join(trs)}</tbody>
      </table>
    """


def _variant_card(name: str, metrics: dict) -> str:
    scores = pd.DataFrame(metrics.get("scores", {})).T.round(4)
    params = metrics.get("best_params", {})
    param_rows = "".join(
        f"<tr><th>{_safe_html(k)}</th><td>{_safe_html(v)}</td></tr>" for k, v in params.items()
    )
    figs = []
    for fig in FIGURES:
        if _exists(os.path.join(ARTIFACTS_DIR, name, fig)):
            src = f"/artifacts/{_safe_html(name)}/{_safe_html(fig)}"
            figs.append(f'<figure><img src="{src}" alt="{_safe_html(fig)}"/></figure>')
    return f"""
    <section class="report">
      <h2>Report: {_safe_html(name)}</h2>
      <p class="muted">fix_age={_safe_html(metrics.get('fix_age'))},
        impute={_safe_html(metrics.get('impute'))},
        train/test={_safe_html(metrics.get('n_train'))}/{_safe_html(metrics.get('n_test'))}</p>
      {_html_table(scores) if not scores.empty else '<p class="muted">No scores recorded.</p>'}
      <h3>Tuned hyperparameters</h3>
      <table class="scores">
        <tbody>{param_rows}</tbody>
      </table>
      {"".join(figs) if figs else '<p class="muted">No figures found (pr_curve.png, tree.png).</p>'}
    </section>
    """


def _layout(title: str, body_html: str) -> HTMLResponse:
    """Plain report page; each variant is one section, figures inline."""
    doc = f"""
    <!doctype html>
    <html>
    <head>
      <meta charset="utf-8" />
      <title>{_safe_html(title)}</title>
      <style>
        body {{ max-width: 1100px; margin: 2rem auto; font-family: Georgia, serif; color: #222; }}
        .muted {{ color: #666; font-size: 0.9rem; }}
        .report {{ border-top: 2px solid #444; padding-top: 0.5rem; margin-bottom: 2rem; }}
        .scores {{ border-collapse: collapse; margin: 0.5rem 0; font-family: monospace; }}
        .scores th, .scores td {{ border-bottom: 1px solid #ccc; padding: 4px 12px; text-align: right; }}
        figure img {{ max-width: 100%; }}
      </style>
    </head>
    <body>
      <h1>Thyroid "sick" decision-tree reports</h1>
      <p class="muted">Artifacts dir: <code>{_safe_html(ARTIFACTS_DIR)}</code></p>
      {body_html}
    </body>
    </html>
    """
    return HTMLResponse(doc)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
def healthz() -> str:
    return "ok"


@app.get("/metrics.json", response_class=JSONResponse)
def metrics_json() -> JSONResponse:
    data = _all_metrics()
    if not data:
        return JSONResponse({"error": "No metrics found. Run the reports first."}, status_code=404)
    return JSONResponse(data)


@app.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    """Home: one section per report variant with scores, tuned params and figures."""
    data = _all_metrics()
    if not data:
        body = """
        <section class="report">
          <h2>No reports yet</h2>
          <p class="muted">Run <code>python run_report.py</code> to write artifacts.</p>
        </section>
        """
        return _layout("Decision-Tree Reports", body)

    sections = "".join(_variant_card(name, m) for name, m in data.items())
    return _layout("Decision-Tree Reports", sections)
