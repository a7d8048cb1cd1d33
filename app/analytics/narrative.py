# app/analytics/narrative.py
from __future__ import annotations
from typing import TYPE_CHECKING, List

from app.analytics.config import Benchmarks

if TYPE_CHECKING:
    from app.analytics.scoring import SecurityAssessment

TIER_HEADLINES = {
    "high": (
        "🔒 High security level ({points}/8 points)",
        ["Keystroke authentication can be used on its own",
         "Imitation by an attacker is very difficult",
         "Well suited to continuous authentication"],
    ),
    "medium": (
        "⚡ Medium security level ({points}/8 points)",
        ["Combine with other authentication factors",
         "Watch out for trained attackers",
         "Effective alongside a password"],
    ),
    "low": (
        "⚠️ Low security level ({points}/8 points)",
        ["Not suitable as a primary authentication method",
         "Use as a supplement in behaviour analysis or anomaly detection",
         "Can improve as the typing pattern settles"],
    ),
}

RECOMMENDED_MEASURES = {
    "high": ["Use as a primary element of a keystroke authentication system",
             "Implement real-time continuous authentication",
             "High-precision decisions in anomaly detection"],
    "medium": ["Multi-factor combination with conventional authentication",
               "Refresh the enrolled pattern periodically to improve accuracy",
               "Tune thresholds for environmental factors"],
    "low": ["Practice to establish a more stable pattern",
            "Consider pairing with other biometric methods",
            "Supplementary use in behaviour log analysis"],
}

def _speed(a: "SecurityAssessment", b: Benchmarks) -> List[str]:
    wpm = a.wpm
    out = ["🎯 **Typing speed analysis**", f"Your speed: {wpm} WPM"]
    if wpm >= b.wpm.expert:
        out.append(f"→ Expert level (well above the {b.wpm.average:.0f} WPM average)")
    elif wpm >= b.wpm.average:
        out.append(f"→ Above average (faster than the {b.wpm.average:.0f} WPM average)")
    elif wpm >= b.wpm.beginner:
        out.append(f"→ Standard level (room to grow towards the {b.wpm.average:.0f} WPM average)")
    else:
        out.append(f"→ Beginner level (practice can take you past {b.wpm.beginner:.0f} WPM)")
    return out

def _timing(a: "SecurityAssessment", b: Benchmarks) -> List[str]:
    out = ["⏱️ **Timing characteristics analysis**", f"Dwell time (key hold): {a.avg_dwell:.0f}ms"]
    if a.avg_dwell < b.dwell.fast:
        out.append(f"→ Shorter than the {b.dwell.average:.0f}ms average, a light touch")
    elif a.avg_dwell > b.dwell.slow:
        out.append(f"→ Longer than the {b.dwell.average:.0f}ms average, a firm press")
    else:
        out.append(f"→ Around the {b.dwell.average:.0f}ms average, standard")

    out.append(f"Flight time (key to key): {a.avg_flight:.0f}ms")
    if a.avg_flight < b.flight.fast:
        out.append(f"→ Shorter than the {b.flight.average:.0f}ms average, quick finger movement")
    elif a.avg_flight > b.flight.slow:
        out.append(f"→ Longer than the {b.flight.average:.0f}ms average, deliberate key choice")
    else:
        out.append(f"→ Around the {b.flight.average:.0f}ms average, standard")
    return out

def _stability(a: "SecurityAssessment", b: Benchmarks) -> List[str]:
    st = a.stability_percent
    out = ["📊 **Stability and consistency analysis**", f"Stability score: {st:.0f}%"]
    if st >= b.stability.very_stable:
        out.append(f"→ Very stable (well above the {b.stability.stable:.0f}% reference)")
    elif st >= b.stability.stable:
        out.append(f"→ Stable (good consistency around the {b.stability.stable:.0f}% reference)")
    else:
        out.append(f"→ Unstable (below the {b.stability.stable:.0f}% reference, rhythm can improve)")
    out.append("Traits: " + ", ".join(a.style_details))
    return out

def _digraphs(a: "SecurityAssessment") -> List[str]:
    p = a.patterns
    out = ["🔤 **Digraph pattern analysis**"]
    if p.fast:
        out.append("Fast pairs: " + ", ".join(p.fast[:5]))
        out.append("→ These combinations come easily and are typed quickly")
    if p.slow:
        out.append("Slow pairs: " + ", ".join(p.slow[:5]))
        out.append("→ These combinations can improve with practice")
    if p.consistent:
        out.append("Consistent pairs: " + ", ".join(p.consistent[:3]))
    if p.variable:
        out.append("Variable pairs: " + ", ".join(p.variable[:3]))
    return out

def _personal(a: "SecurityAssessment") -> List[str]:
    u = a.sub_scores.uniqueness
    out = ["🎭 **Personal characteristics summary**", f"Pattern variety: {u}%"]
    if u >= 70:
        out.append("→ Uses a wide range of key combinations, an expressive style")
    elif u >= 50:
        out.append("→ Standard key patterns, a balanced style")
    else:
        out.append("→ Concentrates on a few patterns, an efficiency-focused style")
    return out

def _security(a: "SecurityAssessment") -> List[str]:
    out = ["🔒 **Overall security evaluation**"]
    out.extend(f"{c.mark} {c.message}" for c in a.checks)
    headline, notes = TIER_HEADLINES[a.tier]
    out.append("")
    out.append("**🛡️ Biometric authentication suitability**")
    out.append(headline.format(points=a.identifiability_points))
    out.extend(f"→ {n}" for n in notes)
    out.append("")
    out.append("**📋 Recommended security measures**")
    out.extend(f"• {m}" for m in RECOMMENDED_MEASURES[a.tier])
    return out

def render_narrative(a: "SecurityAssessment", b: Benchmarks) -> str:
    sections = [_speed(a, b), _timing(a, b), _stability(a, b)]
    if a.patterns.any():
        sections.append(_digraphs(a))
    sections.append(_personal(a))
    sections.append(_security(a))
    return "\n\n".join("\n".join(lines) for lines in sections) + "\n"
