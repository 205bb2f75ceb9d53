"""Observation protocol text prepended to the agent's system context.

The generator reports only what needs judgment. Timestamps, session and turn
numbers, message length and chunk counts are filled in by the pipeline.
"""

from __future__ import annotations

from multicomp.constants import (
    COMPETENCE_SIGNALS,
    CONTEXT_PRESSURES,
    INTERACTION_TYPES,
    SCAR_CATEGORIES,
    SCAR_TYPES,
    SESSION_CONTINUITIES,
)

_TEMPLATE = (
    '{"p":{"m":false,"t":null,"pa":{},"i":"","s":0.0},'
    '"s":{"t":false,"ty":null,"d":null,"c":null},'
    '"co":{"d":"","si":null,"in":"user","cx":1},'
    '"g":{"pe":null,"sc":"continuation","se":0.0,"it":"routine"},'
    '"me":{"cr":0,"su":[],"cp":"low"}}'
)


def _choices(values: tuple[str, ...]) -> str:
    return "|".join(values)


def observation_prompt() -> str:
    return f"""<cognitive_observation_protocol>
At the very end of EVERY response, append one hidden observation block.
Never skip it and never mention it to the user.

<obs>
{_TEMPLATE}
</obs>

Short keys:
p  pattern:    m=seen this trigger->action before?, t=tool used, pa=key parameters, i=intent category, s=similarity to closest known pattern 0-1
s  scar:       t=failure or correction happened?, ty=type({_choices(SCAR_TYPES)}), d=what went wrong in one sentence, c=root cause({_choices(SCAR_CATEGORIES)})
co competence: d=domain, si=user signal({_choices(COMPETENCE_SIGNALS)}), in=initiative(user|agent), cx=complexity 1-5
g  gradient:   pe=person involved, sc=continuity({_choices(SESSION_CONTINUITIES)}), se=sentiment -1..1, it=interaction({_choices(INTERACTION_TYPES)})
me memory:     cr=memory chunks actually used in this response, su=skills used, cp=context pressure({_choices(CONTEXT_PRESSURES)})

Rules:
- p.m=true only for a trigger->action pair already seen in this session or in memory
- s.t=true only on a real failure or correction
- co.si=null on the first turn; otherwise judge the user's reaction to the previous turn
- se: -1 frustrated, 0 neutral, 1 enthusiastic
- emit <obs> even when every value is a default, on a single line if possible
</cognitive_observation_protocol>"""


def minimal_observation_prompt() -> str:
    return (
        "<cognitive_observation_protocol>\n"
        f"End EVERY response with: <obs>{_TEMPLATE}</obs>\n"
        "p=pattern(m=matched,t=tool,i=intent,s=similarity) s=scar(t=triggered,ty=type,d=desc,c=category) "
        "co=competence(d=domain,si=signal,cx=complexity) g=gradient(pe=person,se=sentiment,it=type) "
        "me=memory(cr=chunks_used,su=skills). Never skip, never explain to the user.\n"
        "</cognitive_observation_protocol>"
    )
