import html
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ..services.prompt_service import STYLE_VARIANTS, PromptCard, PromptService, UserFacingError
from .deps import get_prompt_service

router = APIRouter()

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="ja">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>プロンプト出力くん</title>
<style>
body {{ font-family: sans-serif; max-width: 720px; margin: 2rem auto; padding: 0 1rem; }}
form {{ display: flex; gap: .5rem; }}
input[type=text] {{ flex: 1; padding: .5rem; font-size: 1rem; }}
.prompt-card {{ display: flex; justify-content: space-between; align-items: center;
  border: 1px solid #ddd; border-radius: 6px; padding: .75rem; margin: .5rem 0; }}
.prompt-text {{ font-weight: bold; }}
.prompt-translation {{ color: #666; font-size: .9rem; }}
.copy-btn.copied {{ background: #4caf50; color: #fff; }}
.error {{ color: #c62828; }}
</style>
</head>
<body>
<h1>プロンプト出力くん</h1>
<form method="get" action="/">
  <input id="keyword-input" type="text" name="keyword" value="{keyword}" placeholder="日本語キーワード (例: 悲しい)" autofocus>
  <select name="style">{style_options}</select>
  <button class="generate-btn" type="submit">生成</button>
</form>
<section id="result-section">
<div id="prompts-container">{results}</div>
</section>
<script>
async function copyToClipboard(button) {{
  const text = button.dataset.prompt;
  try {{
    await navigator.clipboard.writeText(text);
  }} catch (e) {{
    const area = document.createElement('textarea');
    area.value = text;
    document.body.appendChild(area);
    area.select();
    document.execCommand('copy');
    document.body.removeChild(area);
  }}
  button.textContent = 'コピー済み!';
  button.classList.add('copied');
  setTimeout(() => {{ button.textContent = 'コピー'; button.classList.remove('copied'); }}, 2000);
}}
</script>
</body>
</html>
"""

CARD_TEMPLATE = """<div class="prompt-card">
  <div class="prompt-content">
    <div class="prompt-text">{prompt}</div>
    <div class="prompt-translation">{gloss}</div>
  </div>
  <button class="copy-btn" type="button" data-prompt="{prompt}" onclick="copyToClipboard(this)">コピー</button>
</div>"""


def render_cards(cards: List[PromptCard]) -> str:
    return "\n".join(
        CARD_TEMPLATE.format(prompt=html.escape(c.prompt, quote=True), gloss=html.escape(c.gloss))
        for c in cards
    )


def render_error(message: str) -> str:
    return f'<div class="error">{html.escape(message)}</div>'


def render_page(keyword: str = "", style: str = "sd15", results: str = "") -> str:
    options = "".join(
        f'<option value="{value}"{" selected" if value == style else ""}>{html.escape(label)}</option>'
        for value, label in STYLE_VARIANTS.items()
    )
    return PAGE_TEMPLATE.format(
        keyword=html.escape(keyword, quote=True),
        style_options=options,
        results=results,
    )


@router.get("/", response_class=HTMLResponse)
async def index(
    keyword: Optional[str] = None,
    style: str = "sd15",
    service: PromptService = Depends(get_prompt_service),
):
    """Keyword form; when a keyword is submitted the result cards are rendered below it."""
    if keyword is None:
        return render_page(style=style)

    try:
        cards = await service.generate_cards(keyword, style)
        results = render_cards(cards)
    except UserFacingError as e:
        results = render_error(str(e))
    return render_page(keyword=keyword, style=style, results=results)
