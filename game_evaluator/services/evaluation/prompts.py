"""
Prompt templates for the scoring oracle.

Consumer prompts foreground critic score, platforms and genres; social
prompts foreground monetization and IP signals, install counts and store
rating. Both ask for the same five-score JSON object.
"""
from typing import Tuple

from game_evaluator.models import CandidateRecord, EvaluationType, GameType

CONSUMER_SYSTEM_PROMPT = (
    "あなたはゲーム業界の専門家です。新発売・アップデートのゲーム情報を10段階で評価してください。"
    "JSON形式で回答してください。"
)

SOCIAL_SYSTEM_PROMPT = (
    "あなたはソーシャルゲーム業界の専門家です。新リリース・アップデート情報を10段階で評価してください。"
    "JSON形式で回答してください。"
)

RESPONSE_FORMAT = """
各項目を0-10で評価し、total_score（総合評価）を1-10で算出してください。
reasoning（評価理由）も日本語で簡潔に記載してください。

【JSON形式で回答】
{
  "trend_score": <0-10の数値>,
  "brand_score": <0-10の数値>,
  "series_score": <0-10の数値>,
  "sales_score": <0-10の数値>,
  "total_score": <1-10の数値>,
  "reasoning": "<評価理由を100文字以内で>"
}
"""

UNKNOWN = "不明"


def _or(value, fallback: str = UNKNOWN) -> str:
    if value is None or value == "" or value == ():
        return fallback
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _update_lines(candidate: CandidateRecord) -> str:
    if candidate.record_kind != EvaluationType.UPDATE:
        return ""
    return (
        f"- アップデート: {_or(candidate.update_title, 'なし')}\n"
        f"- バージョン: {_or(candidate.version)}\n"
    )


def build_consumer_prompt(candidate: CandidateRecord, trend_score: float) -> str:
    quality = candidate.quality_signal
    return f"""
以下のコンシューマーゲームを10段階で評価してください。

【ゲーム情報】
- タイトル: {candidate.title}
- 発売日: {_or(candidate.release_date, '未定')}
- 開発元: {_or(candidate.developer)}
- 発売元: {_or(candidate.publisher)}
- プラットフォーム: {_or(candidate.platforms)}
- ジャンル: {_or(candidate.genres)}
- 説明: {_or((candidate.description or '')[:500], 'なし')}
- Metacriticスコア: {int(quality) if quality is not None else 'なし'}
- トレンドスコア: {trend_score:.2f}
{_update_lines(candidate)}
【評価基準】
1. トレンド評価 (trend_score): XやYouTube、SNSで話題かどうか（トレンドスコアを参考）
2. ブランド評価 (brand_score): 有名メーカー（任天堂、カプコン、スクエニ等）かどうか
3. シリーズ評価 (series_score): 有名タイトル（ポケモン、モンハン等）のシリーズ・続編か
4. 売上評価 (sales_score): Metacriticスコアやレビュー評価が高いか
{RESPONSE_FORMAT}"""


def build_social_prompt(candidate: CandidateRecord, trend_score: float) -> str:
    return f"""
以下のソーシャルゲームを10段階で評価してください。

【ゲーム情報】
- タイトル: {candidate.title}
- リリース日: {_or(candidate.release_date, '未定')}
- 開発元: {_or(candidate.developer)}
- ジャンル: {_or(candidate.genres)}
- インストール数: {_or(candidate.installs)}
- ストア評価: {f'{candidate.rating:.1f}' if candidate.rating is not None else 'なし'}
- 説明: {_or((candidate.description or '')[:500], 'なし')}
- トレンドスコア: {trend_score:.2f}
{_update_lines(candidate)}
【評価基準】
1. トレンド評価 (trend_score): XやYouTube、SNSで話題かどうか（トレンドスコアを参考）
2. ブランド評価 (brand_score): 有名メーカー（Cygames、アニプレックス等）や有名IPか
3. シリーズ評価 (series_score): 人気タイトルのシリーズ・続編か
4. 売上評価 (sales_score): セールスランキングやユーザー評価が高いか（推測）
{RESPONSE_FORMAT}"""


def build_prompts(candidate: CandidateRecord, trend_score: float) -> Tuple[str, str]:
    """(system, user) prompt pair for the candidate's game type."""
    if candidate.game_type == GameType.SOCIAL:
        return SOCIAL_SYSTEM_PROMPT, build_social_prompt(candidate, trend_score)
    return CONSUMER_SYSTEM_PROMPT, build_consumer_prompt(candidate, trend_score)
