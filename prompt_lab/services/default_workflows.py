"""
Built-in sample workflows.
"""

import copy
from typing import List, Optional

from prompt_lab.models import GenerationConfig, Task, TaskType, Workflow

_MODEL = "gemini-2.5-flash"


ARTICLE_ANALYSIS = Workflow(
    id="wf-default-1",
    name="Analyze and Summarize Article",
    description="Takes an article from user input, analyzes its sentiment, and provides a concise summary.",
    is_default=True,
    tasks=[
        Task(
            id="task-1",
            name="User Input Article",
            description="Accepts the article text from the user.",
            type=TaskType.DATA_INPUT,
            input_keys=["userInput.text"],
            output_key="articleText",
            static_value="{{userInput.text}}",
        ),
        Task(
            id="task-2",
            name="Sentiment Analysis",
            description="Analyzes the sentiment of the article.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["task-1"],
            input_keys=["articleText"],
            output_key="sentiment",
            prompt_template=(
                "Analyze the sentiment of the following article and classify it as POSITIVE, "
                "NEGATIVE, or NEUTRAL. Return only the classification. Article: {{articleText}}"
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.1),
        ),
        Task(
            id="task-3",
            name="Generate Summary",
            description="Creates a 3-sentence summary of the article.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["task-1"],
            input_keys=["articleText"],
            output_key="summary",
            prompt_template="Summarize the following article in three concise sentences. Article: {{articleText}}",
            generation_config=GenerationConfig(model=_MODEL, temperature=0.7),
        ),
        Task(
            id="task-4",
            name="Format Final Report",
            description="Combines the summary and sentiment into a final report.",
            type=TaskType.TEXT_MANIPULATION,
            dependencies=["task-2", "task-3"],
            input_keys=["summary", "sentiment"],
            output_key="finalReport",
            function_body='return f"Sentiment: {inputs[\'sentiment\']}\\n\\nSummary:\\n{inputs[\'summary\']}"',
        ),
    ],
)

IMAGE_DESCRIPTION = Workflow(
    id="wf-default-2",
    name="Image Content Description",
    description="Accepts an image, describes its contents, and suggests social media captions.",
    is_default=True,
    tasks=[
        Task(
            id="img-task-1",
            name="User Input Image",
            description="Accepts an image from the user.",
            type=TaskType.DATA_INPUT,
            input_keys=["userInput.image"],
            output_key="userImage",
            static_value="{{userInput.image}}",
        ),
        Task(
            id="img-task-2",
            name="Describe Image Content",
            description="Generates a detailed description of the uploaded image.",
            type=TaskType.IMAGE_ANALYSIS,
            dependencies=["img-task-1"],
            input_keys=["userImage"],
            output_key="imageDescription",
            prompt_template="Describe the contents of this image in detail.",
            generation_config=GenerationConfig(model=_MODEL),
        ),
        Task(
            id="img-task-3",
            name="Suggest Social Media Captions",
            description="Generates 3 social media captions based on the image description.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["img-task-2"],
            input_keys=["imageDescription"],
            output_key="captions",
            prompt_template=(
                "Based on the following description of an image, generate 3 creative and engaging "
                "social media captions. Image description: {{imageDescription}}"
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.8),
        ),
    ],
)

CODE_DEBUGGER = Workflow(
    id="wf-default-3",
    name="Code Debugger Assistant",
    description="Accepts an issue description and a code file, analyzes the problem, and proposes a fix.",
    is_default=True,
    tasks=[
        Task(
            id="debug-task-1",
            name="Get Reported Issue Description",
            description="Accepts the issue description from the user's text input.",
            type=TaskType.DATA_INPUT,
            input_keys=["userInput.text"],
            output_key="issueDescription",
            static_value="{{userInput.text}}",
        ),
        Task(
            id="debug-task-2",
            name="Get Codebase From File",
            description="Accepts the code file from the user's file upload.",
            type=TaskType.DATA_INPUT,
            input_keys=["userInput.file.content"],
            output_key="codebaseText",
            static_value="{{userInput.file.content}}",
        ),
        Task(
            id="debug-task-3",
            name="Analyze Code and Debug Issue",
            description="Analyzes the code and the issue to find the root cause.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["debug-task-1", "debug-task-2"],
            input_keys=["issueDescription", "codebaseText"],
            output_key="analysis",
            prompt_template=(
                "Please analyze the following code based on the issue described. Identify the root "
                "cause of the problem and explain it clearly.\n\n"
                "ISSUE DESCRIPTION:\n{{issueDescription}}\n\n"
                "CODEBASE:\n```\n{{codebaseText}}\n```"
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.2),
        ),
        Task(
            id="debug-task-4",
            name="Propose Concrete Code Fix",
            description="Generates a corrected version of the code.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["debug-task-3", "debug-task-2"],
            input_keys=["analysis", "codebaseText"],
            output_key="codeFix",
            prompt_template=(
                "Based on the following analysis and original code, provide a corrected version of "
                "the code. Only output the corrected code block with clear comments on the changes. "
                "Do not include any other explanations outside of the code block.\n\n"
                "ANALYSIS:\n{{analysis}}\n\n"
                "ORIGINAL CODE:\n```\n{{codebaseText}}\n```"
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.5),
        ),
    ],
)

PERLOCUTIONARY_FORECASTER = Workflow(
    id="wf-perlocutionary-default",
    name="Perlocutionary Effect Forecaster",
    description=(
        "Analyzes obfuscated communication from text, a file, or an image to forecast social and "
        "emotional fallout, calculating key risk metrics."
    ),
    is_default=True,
    tasks=[
        Task(
            id="pef-task-1",
            name="Analyze Image Content",
            description="If an image is provided, analyzes its content for potential hidden meaning or sentiment.",
            type=TaskType.IMAGE_ANALYSIS,
            input_keys=["userInput.image?"],
            output_key="imageAnalysisResult",
            prompt_template=(
                "Thoroughly describe the visual elements and any text in this image. Focus on aspects "
                "that could convey subtle, indirect, or emotionally-charged messages. What is the "
                "potential perlocutionary effect of this image?"
            ),
            generation_config=GenerationConfig(model=_MODEL),
        ),
        Task(
            id="pef-task-2",
            name="Capture Obfuscated Prompt",
            description="Consolidates input from text, a file, or image analysis into a single prompt for forecasting.",
            type=TaskType.TEXT_MANIPULATION,
            dependencies=["pef-task-1"],
            input_keys=["userInput.text?", "userInput.file.content?", "imageAnalysisResult?"],
            output_key="obfuscatedPrompt",
            function_body=(
                "return (inputs.get('text') or inputs.get('content') or inputs.get('imageAnalysisResult')\n"
                "        or 'No input provided. Please provide text, a file, or an image.')"
            ),
        ),
        Task(
            id="pef-task-3",
            name="Forecast Perlocutionary Effects",
            description=(
                "Analyzes the obfuscated text to predict its social and emotional impact and calculate "
                "specific risk metrics."
            ),
            type=TaskType.TEXT_GENERATION,
            dependencies=["pef-task-2"],
            input_keys=["obfuscatedPrompt"],
            output_key="perlocutionaryMetrics",
            prompt_template=(
                "Given the following potentially obfuscated communication, analyze its perlocutionary "
                "effects. Identify the likely emotional responses (e.g., anger, confusion, reassurance) "
                "and social consequences (e.g., loss of trust, increased cohesion, conflict initiation). "
                'Output your analysis as a JSON object with keys "emotional_responses" (an array of '
                'strings) and "social_consequences" (an array of strings).\n\n'
                'Communication:\n"{{obfuscatedPrompt}}"'
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.3),
        ),
        Task(
            id="pef-task-4",
            name="Generate Risk Assessment Report",
            description="Compiles the forecasted perlocutionary effects and risk metrics into a structured report.",
            type=TaskType.TEXT_GENERATION,
            dependencies=["pef-task-3"],
            input_keys=["perlocutionaryMetrics", "obfuscatedPrompt"],
            output_key="riskAssessmentReport",
            prompt_template=(
                "Based on the following analysis of perlocutionary effects, generate a concise risk "
                "assessment report in Markdown format. The report should summarize the findings and "
                "assign a risk level (Low, Medium, High).\n\n"
                'Original Communication:\n"{{obfuscatedPrompt}}"\n\n'
                "Analysis:\n{{perlocutionaryMetrics}}"
            ),
            generation_config=GenerationConfig(model=_MODEL, temperature=0.5),
        ),
    ],
)

DEFAULT_WORKFLOWS: List[Workflow] = [
    ARTICLE_ANALYSIS,
    IMAGE_DESCRIPTION,
    CODE_DEBUGGER,
    PERLOCUTIONARY_FORECASTER,
]


def get_default_workflow(workflow_id: str) -> Optional[Workflow]:
    """Fresh copy of a built-in workflow, or None."""
    for workflow in DEFAULT_WORKFLOWS:
        if workflow.id == workflow_id:
            return copy.deepcopy(workflow)
    return None
