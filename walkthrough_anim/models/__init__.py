from .scene_step import SceneStep
