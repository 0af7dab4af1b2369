"""Prompt construction for the summary call."""

import json
from collections.abc import Iterable

from channel_summarizer.session import ChannelInfo, CollectedMessage

SUMMARY_SYSTEM_PROMPT = """This is a summarizer bot. Summarize the following messages from a Telegram channel.
Instructions:
1. Below are messages from the channel in JSON format. Each provided message has `text` and `id` fields.
2. Not every message should be summarized. Only summarize messages that are important, funny or have their own value to be summarized.
3. Use summary groups to group messages that are related to each other. One summary group can contain one or multiple messages.
   It's recommended a group contains fewer than 4 messages, and return no more than 6 groups. Longer messages have more chance to be selected.
4. A summary group should have its own title. The title should be a short sentence (no more than 10 words) that describes the content of the summary group exactly, and as humorous as possible.
   Example: "Elon Musk's attitude towards Dogecoin", "A bad day starts with the drop of a coffee cup".
5. Each message in the summary group should also have a short sentence (no more than 15 words) that describes the content of the message exactly, and as humorous as possible.
   Example: "How he (Elon Musk) explains the Dogecoin", "The Dogecoin price prediction".
6. A message can be used ONLY ONCE among all summary groups. DO NOT REUSE the same message in different or the same summary groups.
7. Titles should be unique and should not be repeated.
8. TITLES SHOULD BE WRITTEN IN THE LANGUAGE THAT THE PROVIDED MESSAGES WERE WRITTEN IN.
9. Respond with the summary groups as a JSON object. Each summary group should have a title and messages. Each message should have an id field,
   which is the same as the message id we provided. Only use ids that appear in the input.
   If the format is incorrect, the bot will not be able to understand the response.
   Input example:
   [{{"text": "xxx", "id": 490}}, {{"text": "xxx", "id": 491}}, {{"text": "xxx", "id": 493}}, {{"text": "xxx", "id": 494}}]
   Response example:
{{
    "result": [{{
        "title": "Elon Musk's attitude towards Dogecoin",
        "messages": [
            {{"title": "How he explains the Dogecoin", "id": 490}},
            {{"title": "The Dogecoin price prediction", "id": 494}}
        ]
    }}, {{
        "title": "A bad day starts with the drop of a coffee cup",
        "messages": [
            {{"title": "The coffee cup drop", "id": 493}}
        ]
    }}]
}}
Here is some information about the channel, it can be used to generate better summaries:
Channel Title: {title}
Channel Description: {description}"""


def build_system_prompt(channel: ChannelInfo | None) -> str:
    title = channel.title if channel else ""
    description = channel.description if channel else ""
    return SUMMARY_SYSTEM_PROMPT.format(title=title, description=description)


def build_payload(messages: Iterable[CollectedMessage]) -> str:
    """Serialize messages as an ordered JSON array of {text, id}."""
    return json.dumps(
        [{"text": m.text, "id": m.message_id} for m in messages],
        ensure_ascii=False,
    )
