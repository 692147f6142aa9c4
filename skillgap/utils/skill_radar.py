import pandas as pd
import plotly.graph_objects as go

from ..domain.proficiency import LEVEL_NAMES

CURRENT_COLOR = "#3027D7"
REQUIRED_COLOR = "#D78827"


def _closed(values: list) -> list:
    # Repeat the first point so the polygon closes
    return values + values[:1] if values else values


def make_skill_gap_radar(
    rows: pd.DataFrame,
    title: str | None = None,
    max_level: int = 3,
) -> go.Figure:
    """
    Radar chart of current vs required level, one spoke per skill.

    ``rows`` needs columns skill, current and required (ordinals 0..3, where 0
    means the learner lacks the skill). The caller decides how many skills to
    plot and how names are shortened.
    """
    required_cols = {"skill", "current", "required"}
    missing = required_cols - set(rows.columns)
    if missing:
        raise ValueError(f"Radar rows missing required columns: {sorted(missing)}")

    rows = rows.copy()
    for col in ("current", "required"):
        rows[col] = pd.to_numeric(rows[col]).clip(lower=0, upper=max_level)

    skills = rows["skill"].astype(str).tolist()
    theta = _closed(skills)

    fig = go.Figure()
    fig.add_trace(
        go.Scatterpolar(
            r=_closed(rows["required"].tolist()),
            theta=theta,
            mode="lines+markers",
            name="Required",
            line=dict(color=REQUIRED_COLOR, dash="dash"),
            hovertemplate="%{theta}: required %{r}<extra></extra>",
        )
    )
    fig.add_trace(
        go.Scatterpolar(
            r=_closed(rows["current"].tolist()),
            theta=theta,
            mode="lines+markers",
            name="Current",
            fill="toself",
            line=dict(color=CURRENT_COLOR),
            opacity=0.6,
            hovertemplate="%{theta}: current %{r}<extra></extra>",
        )
    )

    tick_vals = list(range(0, max_level + 1))
    tick_text = ["none"] + [name.title() for name in LEVEL_NAMES[:max_level]]
    fig.update_layout(
        title=title,
        showlegend=True,
        polar=dict(
            radialaxis=dict(
                range=[0, max_level],
                tickvals=tick_vals,
                ticktext=tick_text,
                showline=False,
            ),
            angularaxis=dict(direction="clockwise"),
        ),
        margin=dict(l=40, r=40, t=60 if title else 30, b=30),
    )
    return fig
