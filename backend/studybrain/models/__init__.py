from studybrain.models.exam import Exam
from studybrain.models.subject import Subject
from studybrain.models.topic import Topic
from studybrain.models.sub_topic import SubTopic
from studybrain.models.clip import Clip
from studybrain.models.video import Video
from studybrain.models.youtube_source import YouTubeSource

__all__ = ["Exam", "Subject", "Topic", "SubTopic", "Clip", "Video", "YouTubeSource"]
