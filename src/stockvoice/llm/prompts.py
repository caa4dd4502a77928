"""
LLM Prompt 模板定义 - Extraction Instruction Templates

One template per supported locale. Templates are f-string style for
langchain's PromptTemplate: ``{command}`` is the only variable, literal JSON
braces are doubled.
"""

from __future__ import annotations

from typing import Dict

from langchain_core.prompts import PromptTemplate

from ..errors import InvalidLanguage


# 俄语指令 - Russian instruction
RU_EXTRACTION_PROMPT = """
Преобразуйте следующую команду на русском языке в структурированный JSON в указанном формате. Используйте **только** информацию из команды. Не добавляйте никаких дополнительных данных или вымышленных элементов.

Команда: "{command}"

Требования:

1. Разбейте команду на отдельные действия, если их несколько. Каждое действие — отдельный объект.
2. Для каждого действия верните объект в следующем формате:

{{
  "manufacturer": "<производитель на английском языке>",
  "part": "<название детали на русском языке>",
  "model": "<модель или кузов на русском языке>",
  "quantity": <количество, целое число>,
  "action": "<add или remove>"
}}

3. Поле "manufacturer" указывайте каноническим английским названием марки. Поля "part" и "model" — на языке команды.
4. **Не придумывайте данные**, отсутствующие в команде.
5. Если действие не указано явно, установите "action" как "add".
6. Учтите, что некоторые термины могут быть автомобильными деталями и популярными марками автомобилей.
7. Ответ должен быть строго в формате JSON, без дополнительного текста или комментариев.

Пример ответа:

{{
  "changes": [
    {{
      "manufacturer": "Toyota",
      "part": "тормозной диск",
      "model": "Corolla",
      "quantity": 1,
      "action": "add"
    }}
  ]
}}
"""

# 拉脱维亚语指令 - Latvian instruction
LV_EXTRACTION_PROMPT = """
Pārveido sekojošo komandu latviešu valodā strukturētā JSON norādītajā formātā. Izmanto **tikai** informāciju no komandas. Nepievieno nekādu papildus informāciju vai izdomātus elementus.

Komanda: "{command}"

Prasības:

1. Sadaliet komandu atsevišķās darbībās, ja tādas ir vairākas. Katra darbība ir atsevišķs objekts.
2. Katrai darbībai atgrieziet objektu sekojošā formātā:

{{
  "manufacturer": "<ražotājs angļu valodā>",
  "part": "<detaļa latviešu valodā>",
  "model": "<modelis vai virsbūve latviešu valodā>",
  "quantity": <daudzums, vesels skaitlis>,
  "action": "<add vai remove>"
}}

3. Laukā "manufacturer" norādiet kanonisko markas nosaukumu angļu valodā. Lauki "part" un "model" ir komandas valodā.
4. **Neizdomājiet datus**, kas nav norādīti komandā.
5. Ja darbība nav skaidri norādīta komandā, pieņemiet darbību "add".
6. Ņemiet vērā, ka daži termini var būt automobiļu detaļas un populāras automašīnu markas.
7. Atbildei jābūt stingri JSON formātā, bez papildu teksta vai komentāriem.

Piemērs atbildei:

{{
  "changes": [
    {{
      "manufacturer": "Toyota",
      "part": "bremžu disks",
      "model": "Corolla",
      "quantity": 1,
      "action": "add"
    }}
  ]
}}
"""

EXTRACTION_PROMPTS: Dict[str, PromptTemplate] = {
    "ru": PromptTemplate.from_template(RU_EXTRACTION_PROMPT),
    "lv": PromptTemplate.from_template(LV_EXTRACTION_PROMPT),
}


def build_instruction(command_text: str, language: str) -> str:
    """
    渲染提取指令 - Render Extraction Instruction

    参数 Parameters:
        command_text: 用户命令，原样嵌入
                      User command, embedded verbatim
        language: "ru" 或 "lv"

    返回 Returns:
        发送给补全服务的指令文本
        Instruction text for the completion service

    异常 Raises:
        InvalidLanguage: 不支持的语言
    """
    template = EXTRACTION_PROMPTS.get(language) if isinstance(language, str) else None
    if template is None:
        raise InvalidLanguage(language)
    return template.format(command=command_text)
