from __future__ import annotations

from pathlib import Path

import streamlit as st

from headline_clf.predict_text import Predictor

st.set_page_config(page_title="Headline Classifier", layout="centered")
st.title("Headline Classifier")
st.caption("Type a headline and see which categories the trained model assigns to it.")

artifact_dir = st.text_input("Artifact directory", value="artifacts")
threshold = st.slider("Prediction threshold", min_value=0.0, max_value=1.0, value=0.5, step=0.05)
headline = st.text_input("Headline", value="")


@st.cache_resource(show_spinner=False)
def load_predictor(path: str, threshold: float) -> Predictor:
    return Predictor(Path(path), threshold=threshold)


if st.button("Classify"):
    if not headline.strip():
        st.error("Enter a headline first.")
    elif not Path(artifact_dir).exists():
        st.error(f"Artifact directory not found: {artifact_dir}")
    else:
        predictor = load_predictor(artifact_dir, threshold)
        preds = predictor.predict(headline)
        if not preds:
            st.warning("No category reached the threshold.")
        else:
            st.subheader("Predicted categories:")
            for rank, pred in enumerate(sorted(preds, key=lambda p: -next(iter(p.values()))), start=1):
                for label, prob in pred.items():
                    st.write(f"{rank}. {label}: {prob:.2%}")
