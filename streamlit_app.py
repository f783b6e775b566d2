# streamlit_app.py — Web UI for ClavTarot
# Run:  streamlit run streamlit_app.py

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Union

import streamlit as st

from clavtarot import logic, tarot_core
from clavtarot.tarot_core import TarotCoreError

# -----------------------------
# Page setup
# -----------------------------
st.set_page_config(
    page_title="ClavTarot",
    page_icon="🔮",
    layout="wide",
)

st.title("🔮 ClavTarot")
st.caption("Draw a spread, pull today's card, or browse the 78-card deck.")

# -----------------------------
# Sidebar controls
# -----------------------------
st.sidebar.header("Controls")

MODES = ["Spread", "Daily Fortune", "Browse Deck"]
mode = st.sidebar.radio("Mode", MODES, index=0)

spreads = {s.name: s for s in tarot_core.list_spreads()}


def render_cards(cards: List[Dict[str, Any]]) -> None:
    """Card grid, one card per column, in reveal order."""
    cols_per_row = 5 if len(cards) >= 5 else max(1, len(cards))
    for start in range(0, len(cards), cols_per_row):
        cols = st.columns(cols_per_row, gap="small")
        for col, card in zip(cols, cards[start:start + cols_per_row]):
            arrow = "↓" if card["orientation"] == "reversed" else "↑"
            star = " ★" if card["arcana"] == "major" else ""
            with col:
                if card.get("position"):
                    st.caption(card["position"])
                st.markdown(f"**{card['card_name']}**{star}  \n`{card['orientation']} {arrow}`")
                st.markdown(f"*{' · '.join(card['keywords'])}*")
                st.write(card["meaning"])
                for topic, icon in (("love", "♥"), ("career", "★"), ("health", "♣")):
                    if card.get(topic):
                        st.caption(f"{icon} {topic.title()}: {card[topic]}")


# -----------------------------
# Spread
# -----------------------------
if mode == "Spread":
    spread_name = st.sidebar.selectbox("Spread", list(spreads), index=1)
    spread = spreads[spread_name]
    st.sidebar.markdown(f"**Number of cards:** `{spread.card_count}`")

    seed = st.sidebar.text_input(
        "Seed (optional)",
        value="",
        placeholder="Leave empty for random each time",
        help="Enter a value to lock results; leave empty for a fresh random draw.",
    )

    with st.sidebar.expander("LLM (optional)"):
        model = st.text_input("Model override (optional)", value="", placeholder="e.g. gemini-2.5-flash")
        temperature = st.slider("Temperature", min_value=0.0, max_value=1.0, value=0.2, step=0.05)

    question = st.text_area(
        "Your question (optional)",
        placeholder="Type your question... If provided, your tarot reader will interpret the draw.",
        height=100,
    )
    explain_with_llm = bool(question.strip())

    col_btn1, col_btn2 = st.columns([1, 1])
    with col_btn1:
        run = st.button("🔀 Draw cards", use_container_width=True)
    with col_btn2:
        clear = st.button("🧹 Clear output", use_container_width=True)

    if clear:
        st.session_state.pop("reading_result", None)
        st.rerun()

    if run:
        with st.spinner("Shuffling the 78-card deck..."):
            seed_val: Optional[Union[int, str]]
            if seed.strip() == "":
                seed_val = None
            else:
                try:
                    seed_val = int(seed)
                except ValueError:
                    seed_val = seed
            try:
                st.session_state["reading_result"] = logic.perform_reading(
                    spread=spread.id,
                    seed=seed_val,
                    question=question,
                    explain_with_llm=explain_with_llm,
                    model=(model or None),
                    temperature=temperature,
                )
            except TarotCoreError as e:
                st.error(f"Reading failed: {e}")

    result = st.session_state.get("reading_result")
    if result:
        reading = result["reading"]
        st.subheader(reading["name"])
        render_cards(reading["cards"])

        llm_block = result.get("llm") or {}
        if result["meta"].get("explain_with_llm"):
            st.markdown("---")
            st.subheader("Your Reader Speaks")
            if llm_block.get("error"):
                st.error(llm_block["error"])
            elif llm_block.get("response_text"):
                st.markdown(llm_block["response_text"])
            else:
                st.info("No LLM response.")

        with st.expander("Debug JSON"):
            st.json(result, expanded=False)
    else:
        st.info("Choose a spread, optionally enter a question, then click **Draw cards**.")

# -----------------------------
# Daily
# -----------------------------
elif mode == "Daily Fortune":
    day = st.sidebar.date_input("Day", value=date.today())
    reading = logic.daily_reading(day).to_dict()
    st.subheader(f"🌅 Daily Tarot Fortune — {day:%A, %B %d, %Y}")
    render_cards(reading["cards"])
    element = reading["cards"][0].get("element")
    if element:
        st.caption(f"Element: {element}")
    st.caption("Same card all day, seeded by the date.")

# -----------------------------
# Deck
# -----------------------------
else:
    catalog = logic.default_catalog()
    groups = logic.browse_deck_dict()
    titles = {"major": "Major Arcana — The Soul's Journey"}
    titles.update({s.key: f"{s.name} — {s.element} — {s.theme}" for s in catalog.suits})
    for group, entries in groups.items():
        with st.expander(f"{titles.get(group, group)} ({len(entries)} cards)", expanded=(group == "major")):
            st.table([
                {
                    "": e["label"],
                    "Card": e["name"],
                    "↑ Upright": ", ".join(e["upright"]),
                    "↓ Reversed": ", ".join(e["reversed"]),
                }
                for e in entries
            ])
    n_major = len(groups["major"])
    st.caption(f"Total: {len(catalog)} cards ({n_major} Major + {len(catalog) - n_major} Minor)")
